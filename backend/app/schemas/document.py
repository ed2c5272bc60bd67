from datetime import datetime

from pydantic import BaseModel, model_validator


class DocumentOut(BaseModel):
    id: str
    reposition_id: str
    filename: str
    original_name: str
    size: int
    uploaded_by: str
    uploader_name: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}

    @model_validator(mode="before")
    @classmethod
    def _extract_uploader_name(cls, data):
        if isinstance(data, dict):
            return data
        values = {
            name: getattr(data, name) for name in cls.model_fields if name != "uploader_name"
        }
        uploader = getattr(data, "uploader", None)
        values["uploader_name"] = uploader.full_name if uploader else None
        return values
