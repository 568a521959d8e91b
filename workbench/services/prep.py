"""Data-preparation console: request orchestration for impute/remove/recode/outliers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from workbench.errors import RequestError, ValidationError
from workbench.services.api_client import ApiClient
from workbench.services.metadata import CATEGORICAL, NUMERICAL, ProjectMetadata

logger = logging.getLogger("workbench.prep")

IMPUTE_METHODS = {
    NUMERICAL: ("mean", "median", "constant"),
    CATEGORICAL: ("mode", "constant"),
}

# strategy -> method per column type
BULK_IMPUTE_STRATEGIES: Dict[str, Dict[str, str]] = {
    "mean_mode": {NUMERICAL: "mean", CATEGORICAL: "mode"},
    "median_mode": {NUMERICAL: "median", CATEGORICAL: "mode"},
    "constant": {NUMERICAL: "constant", CATEGORICAL: "constant"},
}

OUTLIER_METHODS = ("cap", "remove")


@dataclass
class BulkResult:
    succeeded: List[str] = field(default_factory=list)
    failed: Optional[str] = None
    error: Optional[str] = None
    skipped: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "succeeded": self.succeeded,
            "skipped": self.skipped,
            "failed": self.failed,
            "error": self.error,
        }


class PrepConsole:
    """Issue data-prep operations for one project.

    Bulk runs go column by column and stop at the first failure, leaving the
    columns already processed as they are.
    """

    def __init__(self, api: ApiClient, project_id: str, metadata: ProjectMetadata, token: Optional[str] = None):
        self.api = api
        self.project_id = project_id
        self.metadata = metadata
        self.token = token

    def _column(self, name: str):
        col = self.metadata.column(name)
        if col is None:
            raise ValidationError(f"Column {name!r} does not exist in this project.")
        return col

    # ---------- single column ----------

    def impute(self, column: str, method: str, constant_value: Any = None) -> Dict[str, Any]:
        col = self._column(column)
        methods = IMPUTE_METHODS.get(col.type, ())
        if method not in methods:
            raise ValidationError(f"{method!r} imputation is not available for {col.type} columns.")
        if method == "constant" and (constant_value is None or str(constant_value).strip() == ""):
            raise ValidationError("A constant value is required.")
        return self.api.impute(self.project_id, column, method, constant_value, self.token)

    def remove_column(self, column: str) -> Dict[str, Any]:
        self._column(column)
        return self.api.remove_column(self.project_id, column, self.token)

    def detect_outliers(self, column: str) -> Dict[str, Any]:
        if self._column(column).type != NUMERICAL:
            raise ValidationError("Outlier detection is only available for numerical columns.")
        return self.api.detect_outliers(self.project_id, column, self.token)

    def treat_outliers(self, column: str, method: str) -> Dict[str, Any]:
        if method not in OUTLIER_METHODS:
            raise ValidationError(f"Unknown outlier treatment {method!r}.")
        if self._column(column).type != NUMERICAL:
            raise ValidationError("Outlier treatment is only available for numerical columns.")
        return self.api.treat_outliers(self.project_id, column, method, self.token)

    def recode(self, column: str, old_values: Iterable[Any], new_value: str) -> Dict[str, Any]:
        if self._column(column).type != CATEGORICAL:
            raise ValidationError("Recoding is only available for categorical columns.")
        recode_map = {str(v): str(new_value) for v in old_values}
        if not recode_map:
            raise ValidationError("Select at least one value to recode.")
        if not str(new_value).strip():
            raise ValidationError("A new value is required.")
        return self.api.recode_column(self.project_id, column, recode_map, self.token)

    # ---------- bulk ----------

    def bulk_impute(
        self,
        strategy: str,
        columns: Optional[Iterable[str]] = None,
        constants: Optional[Mapping[str, Any]] = None,
    ) -> BulkResult:
        """Impute many columns; ``columns=None`` means every column with gaps."""
        if strategy not in BULK_IMPUTE_STRATEGIES:
            raise ValidationError("Please select an imputation strategy.")
        names = [c.name for c in self.metadata.missing_columns()] if columns is None else list(columns)
        if not names:
            raise ValidationError("No columns selected for imputation.")
        targets = [self._column(n) for n in names]

        constants = constants or {}
        if strategy == "constant":
            for col_type in {c.type for c in targets if c.missing_count > 0}:
                if str(constants.get(col_type, "")).strip() == "":
                    raise ValidationError(f"Constant {col_type} value is required.")

        result = BulkResult()
        methods = BULK_IMPUTE_STRATEGIES[strategy]
        for col in targets:
            if col.missing_count == 0 or col.type not in methods:
                result.skipped.append(col.name)
                continue
            method = methods[col.type]
            constant = constants.get(col.type) if method == "constant" else None
            try:
                self.api.impute(self.project_id, col.name, method, constant, self.token)
            except RequestError as e:
                logger.warning("Bulk impute stopped at %s: %s", col.name, e)
                result.failed, result.error = col.name, f"Failed to impute {col.name}: {e}"
                break
            result.succeeded.append(col.name)
        return result

    def bulk_treat_outliers(self, method: str, columns: Optional[Iterable[str]] = None) -> BulkResult:
        """Treat outliers in many columns; ``columns=None`` means every numerical one."""
        if method not in OUTLIER_METHODS:
            raise ValidationError("Please select an outlier treatment strategy.")
        names = self.metadata.names(NUMERICAL) if columns is None else list(columns)
        if not names:
            raise ValidationError("No numerical columns selected for treatment.")

        result = BulkResult()
        for name in names:
            col = self._column(name)
            if col.type != NUMERICAL:
                result.skipped.append(name)
                continue
            try:
                self.api.treat_outliers(self.project_id, name, method, self.token)
            except RequestError as e:
                logger.warning("Bulk outlier treatment stopped at %s: %s", name, e)
                result.failed, result.error = name, f"Failed to treat outliers in {name}: {e}"
                break
            result.succeeded.append(name)
        return result


__all__ = [
    "IMPUTE_METHODS",
    "BULK_IMPUTE_STRATEGIES",
    "OUTLIER_METHODS",
    "BulkResult",
    "PrepConsole",
]
