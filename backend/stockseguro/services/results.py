# Overview: Uniform success/failure envelope returned by the write engines.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


CODE_VALIDATION = "validation"
CODE_NOT_FOUND = "not_found"
CODE_BUSINESS_RULE = "business_rule"
CODE_CONFLICT = "conflict"
CODE_CONCURRENCY = "concurrency"
CODE_INTERNAL = "internal"

HTTP_STATUS_BY_CODE = {
    CODE_VALIDATION: 400,
    CODE_NOT_FOUND: 404,
    CODE_BUSINESS_RULE: 422,
    CODE_CONFLICT: 409,
    CODE_CONCURRENCY: 409,
    CODE_INTERNAL: 500,
}


@dataclass
class OperationResult:
    """
    Result of a public engine call.

    Engines never raise past their boundary; the presentation layer gets
    either {"ok": true, ...data} or {"ok": false, "error", "code"}.
    """
    ok: bool
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    code: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, **data: Any) -> "OperationResult":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: str, code: str, details: dict | None = None) -> "OperationResult":
        return cls(ok=False, error=error, code=code, details=details or {})

    @property
    def http_status(self) -> int:
        if self.ok:
            return 200
        return HTTP_STATUS_BY_CODE.get(self.code, 500)

    def to_dict(self) -> dict:
        if self.ok:
            return {"ok": True, **self.data}
        payload = {"ok": False, "error": self.error, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload
