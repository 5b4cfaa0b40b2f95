"""
Export input bundle.

The JSON document the CLI reads and the API accepts: a presentation plus
the sprint data its renderers draw on.
"""

import json
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from sprint_export.errors import InputValidationError
from sprint_export.models.presentation import Issue, Presentation, SprintMetrics


class ExportBundle(BaseModel):
    """Everything one export call needs besides its options."""

    presentation: Presentation
    issues: List[Issue] = Field(default_factory=list, description="All sprint issues")
    upcoming_issues: List[Issue] = Field(default_factory=list, description="Issues planned for the next sprint")
    metrics: Optional[SprintMetrics] = None

    @classmethod
    def load(cls, path: Union[str, Path]) -> "ExportBundle":
        """Read a bundle from a JSON file.

        Raises:
            InputValidationError: If the file is not valid JSON or does not
                match the bundle schema
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise InputValidationError(f"Invalid JSON in {path}: {e}", field_name="input") from e
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise InputValidationError(
                f"Invalid export bundle {path}: {e.error_count()} validation error(s)\n{e}",
                field_name="input",
            ) from e
