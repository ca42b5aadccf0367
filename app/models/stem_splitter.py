from pydantic import BaseModel, Field


class StemSplitRequest(BaseModel):
    source_url: str = Field(..., description="Absolute http(s) URL of the audio file to split.")
