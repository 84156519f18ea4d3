"""Capability and enabler reference data models."""

from datetime import datetime

from pydantic import BaseModel, Field


class Capability(BaseModel):
    """A named unit of platform functionality with declared prerequisites.

    Attributes:
        id: Unique capability identifier (e.g. "C04")
        name: Human-readable name
        description: Short description of what the capability provides
        enablers: IDs of the enablers that implement the capability
        dependencies: IDs of capabilities that must be requested alongside it
        created_at: When the capability was seeded
    """

    id: str
    name: str
    description: str = ""
    enablers: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Enabler(BaseModel):
    """A platform building block referenced by capabilities."""

    id: str
    name: str
    description: str = ""
    created_at: datetime = Field(default_factory=datetime.utcnow)


class EnvironmentTemplate(BaseModel):
    """A pre-configured capability selection offered to users."""

    id: str
    name: str
    description: str
    capabilities: list[str]
    popularity: int = 0
    cost: float = 0.0
