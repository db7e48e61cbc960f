from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator
from ccmp.infrastructure.codecs import CODECS

class GeneralConfig(BaseModel):
    threads: int = Field(default=8, gt=0)
    chunk_size: int = Field(default=64 * 1024, ge=1024, le=64 * 1024 * 1024)
    progress_interval: float = Field(default=0.25, ge=0.0)
    delete_partial_output: bool = False
    output_dir: Optional[Path] = Field(default=None)
    codecs: List[str] = Field(default_factory=lambda: [c.name for c in CODECS])
    debug: bool = False

    @field_validator('codecs')
    @classmethod
    def validate_codecs(cls, v: List[str]) -> List[str]:
        known = {c.name.lower(): c.name for c in CODECS}
        names = []
        for name in v:
            canonical = known.get(name.lower())
            if canonical is None:
                raise ValueError(f"Unknown codec {name!r}. Must be one of: {', '.join(known.values())}.")
            if canonical in names:
                raise ValueError(f"Codec {canonical} listed more than once.")
            names.append(canonical)
        if not names:
            raise ValueError("At least one codec must be enabled.")
        return names

class AppConfig(BaseModel):
    general: GeneralConfig = Field(default_factory=GeneralConfig)
