from __future__ import annotations

from fastapi import HTTPException, status


class DraftError(HTTPException):
    """
    A request the engine refuses (4xx) or could not finish after compensating (5xx).

    Rendered as {"error": message} by the handler installed in create_app().
    Expected races are never raised; they come back as SoftErrorOut with HTTP 200.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=message, headers=headers)

    @property
    def message(self) -> str:
        return str(self.detail)
