"""
Result Validator — the single gate between untrusted JSON and a trusted
ComplianceResult.

Checks, in order:
    1. isCompliant is present and a real boolean
    2. issues / compliantItems / recommendations are present lists of
       objects with string fields
    3. every issue kind is one of missing / incorrect / prohibited

Optionally (strict_consistency) also rejects results that claim compliance
while listing issues.
"""

import logging
from typing import Any

from pydantic import ValidationError

from dresscode.errors import ShapeError
from dresscode.schemas.schemas import ComplianceResult

logger = logging.getLogger(__name__)

LIST_FIELDS = ("issues", "compliantItems", "recommendations")


def _format_error(err: dict) -> str:
    loc = ".".join(str(part) for part in err.get("loc", ()))
    return f"{loc}: {err.get('msg', 'invalid')}" if loc else err.get("msg", "invalid")


class ResultValidator:
    def __init__(self, strict_consistency: bool = False):
        self.strict_consistency = strict_consistency

    def validate(self, candidate: Any) -> ComplianceResult:
        if isinstance(candidate, ComplianceResult):
            candidate = candidate.to_wire()
        if not isinstance(candidate, dict):
            raise ShapeError(
                f"Expected a JSON object, got {type(candidate).__name__}",
                ["<root>: not an object"],
            )

        flag = candidate.get("isCompliant")
        if not isinstance(flag, bool):
            problem = "missing" if "isCompliant" not in candidate else "must be a boolean"
            raise ShapeError(f"isCompliant {problem}", [f"isCompliant: {problem}"])

        missing = [name for name in LIST_FIELDS if name not in candidate]
        if missing:
            raise ShapeError(
                f"Missing required field(s): {', '.join(missing)}",
                [f"{name}: missing" for name in missing],
            )

        try:
            result = ComplianceResult.model_validate(candidate)
        except ValidationError as exc:
            errors = [_format_error(e) for e in exc.errors()]
            raise ShapeError(f"Invalid compliance result: {'; '.join(errors)}", errors) from exc

        if result.is_compliant and result.issues:
            message = (
                f"isCompliant is true but {len(result.issues)} issue(s) were reported"
            )
            if self.strict_consistency:
                raise ShapeError(message, [f"issues: {message}"])
            logger.warning("Inconsistent compliance result accepted: %s", message)

        return result


def validate_result(candidate: Any, *, strict_consistency: bool = False) -> ComplianceResult:
    return ResultValidator(strict_consistency).validate(candidate)
