"""Pydantic models for the SQL assistant proxy endpoints."""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

ResultFormat = Literal["json", "csv", "table", "chart_data", "summary"]


class QueryContext(BaseModel):
    """Optional scoping hints forwarded to the assistant."""

    organization: Optional[str] = None
    department: Optional[str] = None
    vendor: Optional[str] = None
    date_range: Optional[str] = None
    filters: Dict[str, Any] = Field(default_factory=dict)


class ChatQueryRequest(BaseModel):
    """Natural-language question to translate into SQL."""

    question: str = Field(..., min_length=1, max_length=2000, description="Question in plain language")
    context: QueryContext = Field(default_factory=QueryContext)
    format: ResultFormat = Field("json", description="Result format requested from the assistant")
    include_explanation: bool = True
    execute_query: bool = True

    @field_validator("question")
    @classmethod
    def question_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Question must be a non-empty string")
        return value.strip()


class ValidateSqlRequest(BaseModel):
    sql_query: str = Field(..., min_length=1)


class ExplainSqlRequest(BaseModel):
    sql: str = Field(..., min_length=1)


class BatchQueryRequest(BaseModel):
    """Up to 10 questions processed one after another."""

    queries: List[ChatQueryRequest] = Field(..., min_length=1, max_length=10)
