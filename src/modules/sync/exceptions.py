"""Errors reported by the distribution API or the transport."""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class BackendError(Exception):
    """The backend rejected a request or could not be reached.

    ``status_code`` is ``None`` for transport failures.  A backend error
    never implies that a state change did or did not happen; callers
    re-fetch to learn the authoritative state.
    """

    def __init__(
        self,
        detail: str,
        status_code: Optional[int] = None,
        code: str = "backend_error",
        errors: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code
        self.code = code
        self.errors = errors or []

    @property
    def is_transport_error(self) -> bool:
        return self.status_code is None

    def __repr__(self) -> str:
        return f"BackendError(status_code={self.status_code!r}, code={self.code!r})"
