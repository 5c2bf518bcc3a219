"""Batch scan configuration models.

This module defines the JSON configuration consumed by the ``historian-scan``
entrypoint: which files to read, where they live, and how to split them.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from historian_reader.reader.reader_config import ReaderConfig


class OCISourceConfig(BaseModel):
    bucket: str = Field(..., min_length=1)
    namespace: str | None = Field(default=None, min_length=1)
    region: str | None = None
    auth_mode: Literal["instance_principal", "api_key"] = "instance_principal"
    oci_config_file: str | None = None
    oci_profile: str = "DEFAULT"

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def validate_auth(self) -> OCISourceConfig:
        if self.auth_mode == "api_key" and self.oci_config_file is None:
            raise ValueError("oci_config_file is required for api_key auth")
        return self


class ScanConfig(BaseModel):
    """Scan job configuration.

    JSON example:
        {
          "id": "pmu-2009-03",
          "source": "local",
          "files": ["/data/historian/ppa_archive1.d"],
          "reader": {"max_split_bytes": 67108864}
        }
    """

    id: str = Field(..., min_length=1)
    source: Literal["local", "oci"] = "local"
    files: list[str] = Field(..., min_length=1)

    reader: ReaderConfig = Field(default_factory=ReaderConfig)
    oci: OCISourceConfig | None = None

    events_path: str | None = None

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def from_json_obj(cls, scan_obj: dict[str, Any]) -> ScanConfig:
        """Create a ScanConfig instance from a JSON-compatible object."""
        return cls.model_validate(scan_obj)

    @model_validator(mode="after")
    def validate_consistency(self) -> ScanConfig:
        if self.source == "oci" and self.oci is None:
            raise ValueError("oci settings are required when source is 'oci'")
        return self
