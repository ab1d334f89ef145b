from pydantic import BaseModel, Field


class GeneratedText(BaseModel):
    """Plain text answer to a prompt"""

    text: str = Field(..., description="The complete answer to the prompt, without preamble")
