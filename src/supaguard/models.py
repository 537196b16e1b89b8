from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# Discovered tables have no natural integer id; offset keeps them clear of API ids.
TABLE_ID_OFFSET = 1000

PROJECT_STATUSES = ("ACTIVE_HEALTHY", "RESTORING", "INIT_FAILED", "PAUSED")


class Organization(BaseModel):
    id: str
    name: str

    model_config = ConfigDict(extra="ignore", frozen=True)


class Project(BaseModel):
    id: str
    organization_id: str = ""
    name: str
    region: str = ""
    created_at: str = ""
    # Vendor adds statuses over time; keep whatever it sends.
    status: str = "ACTIVE_HEALTHY"

    model_config = ConfigDict(extra="ignore", frozen=True)

    @property
    def is_healthy(self) -> bool:
        return self.status == "ACTIVE_HEALTHY"


class Backup(BaseModel):
    id: str | int
    project_id: str = ""
    inserted_at: str = ""
    is_physical: bool = False
    status: str = ""

    model_config = ConfigDict(extra="ignore", frozen=True)


class TableColumn(BaseModel):
    name: str
    format: str = ""
    data_type: str = ""
    is_nullable: bool = True
    is_identity: bool = False

    model_config = ConfigDict(extra="ignore", frozen=True)


class Table(BaseModel):
    """A base table of the selected project, optionally enriched with its row count."""

    id: int
    name: str
    table_schema: str = Field(default="public", alias="schema")
    row_count: Optional[int] = Field(default=None, alias="rowCount")
    columns: Optional[list[TableColumn]] = None

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    @property
    def fqdn(self) -> str:
        return f"{self.table_schema}.{self.name}"
