"""Pydantic schemas for the assessment API."""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class ChatMemory(BaseModel):
    asked: List[str] = Field(default_factory=list)
    facts: Dict[str, Any] = Field(default_factory=dict)


class ChatTurnReq(BaseModel):
    messages: List[Dict[str, Any]] = Field(default_factory=list)
    lastQuestionAsked: str = ""
    lastTopic: Optional[str] = None
    memory: ChatMemory = Field(default_factory=ChatMemory)
    preferences: Optional[Dict[str, Any]] = None
    dealer: Optional[str] = None
    assessmentId: Optional[str] = None


class ChatTurnResp(BaseModel):
    action: Literal["ask", "clarify", "warn", "stop"]
    ack: str = ""
    explain: str = ""
    nextQuestion: str = ""
    topic: Optional[str] = None
    facts: Dict[str, Any] = Field(default_factory=dict)


class SessionTurnReq(BaseModel):
    userMsg: str
    version: int = Field(ge=0)


class SessionResp(BaseModel):
    assessmentId: str
    status: str
    version: int
    messages: List[Dict[str, Any]] = Field(default_factory=list)
    pendingTopic: Optional[str] = None
    pendingQuestion: Optional[str] = None
    answered: int = 0
    total: int = 0


class SessionTurnResp(SessionResp):
    action: Literal["ask", "clarify", "warn", "stop"]
    ack: str = ""
    explain: str = ""
    nextQuestion: str = ""
    topic: Optional[str] = None
    facts: Dict[str, Any] = Field(default_factory=dict)
    appended: List[Dict[str, Any]] = Field(default_factory=list)
