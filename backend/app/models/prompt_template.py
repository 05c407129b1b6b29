"""
PromptTemplate model: reusable captioning instructions.
Temperature is stored as an integer 0-100 and divided by 100 before use.
At most one row has is_default=True (enforced by the service layer).
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime

from app.models.base import Base, utcnow

DEFAULT_MODEL = "gpt-4o"
DEFAULT_MAX_TOKENS = 500
DEFAULT_TEMPERATURE = 70


class PromptTemplate(Base):
    __tablename__ = "prompt_templates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    system_prompt = Column(Text, nullable=False)
    user_prompt_template = Column(Text, nullable=False)
    model = Column(String(100), nullable=False, default=DEFAULT_MODEL)
    max_tokens = Column(Integer, nullable=False, default=DEFAULT_MAX_TOKENS)
    temperature = Column(Integer, nullable=False, default=DEFAULT_TEMPERATURE)
    is_default = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<PromptTemplate(id={self.id}, name={self.name!r}, default={self.is_default})>"
