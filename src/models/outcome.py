"""
Outcome of a non-critical side effect (audit write, queue insert, follow-up hook).

Callers can tell "done" from "logged and continued" without the side effect
raising into the surrounding operation.
"""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Outcome:
    name: str
    ok: bool
    error: Optional[str] = None

    @classmethod
    def success(cls, name: str) -> "Outcome":
        return cls(name=name, ok=True)

    @classmethod
    def failure(cls, name: str, error: BaseException | str) -> "Outcome":
        return cls(name=name, ok=False, error=str(error))
