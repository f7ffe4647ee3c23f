"""Prompt Schemas — prompt editing and dry-run payloads."""

from pydantic import BaseModel, Field


class PromptUpdate(BaseModel):
    system_prompt: str = Field(min_length=1)
    user_prompt_template: str = Field(min_length=1)


class PromptTest(PromptUpdate):
    test_variables: dict[str, str] = Field(default_factory=dict)
