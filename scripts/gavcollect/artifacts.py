"""Output records for collected coordinates.

Maps each ``ArtifactCoordinate`` onto a ``DependencyInfo`` row annotated
with the file that represents it locally, and renders rows as a text
table, JSON or CSV.
"""

import csv
import json
from typing import IO, Iterable, List, Optional

from pydantic import BaseModel, Field

from .locator import DescriptorLocator
from .pom_models import ArtifactCoordinate, SourceType

MISSING_LOCALLY = "local file missing"

CSV_COLUMNS = [
    "group_id", "artifact_id", "version", "packaging", "classifier", "scope",
    "source_type", "local_path", "exists_locally", "error_message",
]


class DependencyInfo(BaseModel):
    """One output row: a coordinate plus its local-repository status."""
    group_id: str = Field(..., description="Maven groupId")
    artifact_id: str = Field(..., description="Maven artifactId")
    version: str = Field(..., description="Resolved version")
    packaging: str = Field(default="jar", description="Packaging type")
    classifier: Optional[str] = Field(None, description="Classifier, if any")
    scope: Optional[str] = Field(None, description="Declared scope, if any")
    source_type: SourceType = Field(..., description="Why the coordinate was collected")
    local_path: Optional[str] = Field(None, description="Binary, or descriptor when no binary is cached")
    exists_locally: bool = Field(default=False, description="Whether local_path exists")
    error_message: Optional[str] = Field(None, description="Why the row is incomplete")

    @property
    def gav(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.version}"


def to_dependency_info(coord: ArtifactCoordinate, locator: DescriptorLocator) -> DependencyInfo:
    local = locator.local_path_for(coord)
    return DependencyInfo(
        group_id=coord.group_id,
        artifact_id=coord.artifact_id,
        version=coord.version,
        packaging=coord.packaging,
        classifier=coord.classifier,
        scope=coord.scope,
        source_type=coord.source_type,
        local_path=str(local) if local else None,
        exists_locally=local is not None,
        error_message=None if local else MISSING_LOCALLY,
    )


def to_dependency_infos(coords: Iterable[ArtifactCoordinate],
                        locator: DescriptorLocator) -> List[DependencyInfo]:
    """Annotate coordinates with their local files, keeping the input order."""
    return [to_dependency_info(c, locator) for c in coords]


def render_text(infos: List[DependencyInfo]) -> str:
    """Render rows as an aligned plain-text table with a summary footer."""
    headers = ["COORDINATE", "PACKAGING", "SOURCE", "LOCAL"]
    rows = []
    for info in infos:
        coord = info.gav
        if info.classifier:
            coord = f"{info.group_id}:{info.artifact_id}:{info.classifier}:{info.version}"
        rows.append([coord, info.packaging, info.source_type.value,
                     info.local_path if info.exists_locally else "-"])
    widths = [max([len(h)] + [len(r[i]) for r in rows]) for i, h in enumerate(headers)]

    def _line(cells):
        return "  ".join(c.ljust(w) for c, w in zip(cells, widths)).rstrip()

    lines = [_line(headers), _line(["-" * w for w in widths])]
    lines.extend(_line(r) for r in rows)
    missing = sum(1 for i in infos if not i.exists_locally)
    lines.append("")
    lines.append(f"{len(infos)} artifact(s), {missing} missing locally")
    return "\n".join(lines) + "\n"


def render_json(infos: List[DependencyInfo]) -> str:
    return json.dumps([i.model_dump(mode="json") for i in infos], indent=2) + "\n"


def write_csv(infos: List[DependencyInfo], stream: IO[str]) -> None:
    """Write rows as CSV with a header line."""
    writer = csv.DictWriter(stream, fieldnames=CSV_COLUMNS, lineterminator="\n")
    writer.writeheader()
    for info in infos:
        row = info.model_dump(mode="json")
        row["exists_locally"] = "true" if info.exists_locally else "false"
        writer.writerow({k: "" if row[k] is None else row[k] for k in CSV_COLUMNS})
