"""User profile submitted for portfolio generation."""
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

ProfileText = Union[str, List[str]]


class UserData(BaseModel):
    """Structured profile data used to fill a portfolio template.

    Only ``name`` is required. Free-form profile fields (email, projects,
    certifications, ...) are kept as-is and passed into the generated site.
    """

    model_config = ConfigDict(
        extra='allow',
        json_schema_extra={
            "example": {
                "name": "Ada Lovelace",
                "about": "Engineer",
                "experience": "Analytical Engine, 1843",
                "skills": ["mathematics", "programming"],
                "email": "ada@example.com",
            }
        },
    )

    name: str = Field(..., description="Display name, also used to derive the project slug")
    about: Optional[ProfileText] = Field(None, description="Short biography")
    experience: Optional[ProfileText] = Field(None, description="Work experience")
    skills: Optional[ProfileText] = Field(None, description="Skills or tech stack")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        """Reject blank names."""
        if not v or not v.strip():
            raise ValueError("Name must not be blank")
        return v.strip()

    def placeholder_value(self, field_name: str) -> Optional[str]:
        """Return a profile field as template text, or None when unset."""
        value = getattr(self, field_name, None)
        if value is None or value == "" or value == []:
            return None
        if isinstance(value, (list, tuple)):
            return ", ".join(str(item) for item in value)
        return str(value)

    def to_payload(self) -> Dict[str, Any]:
        """JSON-compatible dict injected into the generated application."""
        return self.model_dump(mode="json", exclude_none=True)

    @classmethod
    def from_file(cls, path: Path) -> "UserData":
        """Load user data from a YAML or JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"User data file not found: {path}")

        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)

        if not isinstance(data, dict):
            raise ValueError("User data file must contain a mapping")
        return cls.model_validate(data)
