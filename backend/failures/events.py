from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any, Dict, List, Optional, Tuple, Union

MAX_CAUSE_DEPTH = 16

Code = Union[int, str]


def qualified_name(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


def short_name(kind: str) -> str:
    return kind.rsplit(".", 1)[-1] or kind


def safe_message(exc: BaseException) -> str:
    """``str(exc)``, or a placeholder when the exception cannot render itself."""
    try:
        return str(exc)
    except Exception:  # noqa: BLE001
        return f"<unprintable {type(exc).__name__} object>"


def exception_code(exc: BaseException) -> Code:
    """Best-effort numeric/string code for an exception; 0 when it has none."""
    if isinstance(exc, OSError) and isinstance(exc.errno, int):
        return exc.errno
    code = getattr(exc, "code", None)
    if isinstance(code, bool):
        return int(code)
    if isinstance(code, (int, str)):
        return code
    return 0


@dataclass
class StackFrame:
    file: Optional[str]
    line: Optional[int]
    function: str
    enclosing_type: Optional[str] = None
    call_type: Optional[str] = None  # "->" for bound methods, "::" for classmethods, None for functions
    args: List[Any] = field(default_factory=list)

    def render(self) -> str:
        owner = f"{self.enclosing_type}." if self.enclosing_type else ""
        return f'  File "{self.file or "[internal]"}", line {self.line or 0}, in {owner}{self.function}'


def _frame_args(frame) -> Tuple[List[Any], Optional[str], Optional[str]]:
    code = frame.f_code
    names = list(code.co_varnames[: code.co_argcount + code.co_kwonlyargcount])
    if code.co_flags & 0x04:  # CO_VARARGS
        names.append(code.co_varnames[len(names)])
    if code.co_flags & 0x08:  # CO_VARKEYWORDS
        names.append(code.co_varnames[len(names)])
    local_vars = frame.f_locals
    args = [local_vars[name] for name in names if name in local_vars]

    enclosing_type = None
    call_type = None
    if names and names[0] in local_vars:
        first = local_vars[names[0]]
        if names[0] == "self":
            enclosing_type = type(first).__qualname__
            call_type = "->"
        elif names[0] == "cls" and isinstance(first, type):
            enclosing_type = first.__qualname__
            call_type = "::"
    if enclosing_type is not None:
        args = args[1:]
    return args, enclosing_type, call_type


def frames_from_traceback(tb: Optional[TracebackType]) -> List[StackFrame]:
    frames: List[StackFrame] = []
    for frame, lineno in traceback.walk_tb(tb):
        args, enclosing_type, call_type = _frame_args(frame)
        frames.append(
            StackFrame(
                file=frame.f_code.co_filename,
                line=lineno,
                function=frame.f_code.co_name,
                enclosing_type=enclosing_type,
                call_type=call_type,
                args=args,
            )
        )
    return frames


def _next_in_chain(exc: BaseException) -> Optional[BaseException]:
    if exc.__cause__ is not None:
        return exc.__cause__
    if exc.__context__ is not None and not exc.__suppress_context__:
        return exc.__context__
    return None


@dataclass
class FailureEvent:
    """
    Immutable-by-convention description of one captured failure.

    ``file``/``line`` point at the innermost frame, where the exception was
    raised. ``frames`` are ordered outermost first, like a printed traceback.
    ``exception`` holds the live (or reconstructed) exception and never
    crosses a transport boundary.
    """

    kind: str
    message: str
    code: Code = 0
    file: str = ""
    line: int = 0
    frames: List[StackFrame] = field(default_factory=list)
    lineage: Tuple[str, ...] = ()
    cause: Optional["FailureEvent"] = None
    exception: Optional[BaseException] = field(default=None, repr=False, compare=False)

    @classmethod
    def from_exception(cls, exc: BaseException) -> "FailureEvent":
        chain: List[BaseException] = []
        seen: set[int] = set()
        current: Optional[BaseException] = exc
        while current is not None and id(current) not in seen and len(chain) < MAX_CAUSE_DEPTH:
            seen.add(id(current))
            chain.append(current)
            current = _next_in_chain(current)

        # The loop always admits ``exc`` itself, so the chain is never empty.
        event = cls._single(chain[-1], cause=None)
        for item in reversed(chain[:-1]):
            event = cls._single(item, cause=event)
        return event

    @classmethod
    def _single(cls, exc: BaseException, *, cause: Optional["FailureEvent"]) -> "FailureEvent":
        frames = frames_from_traceback(exc.__traceback__)
        innermost = frames[-1] if frames else None
        return cls(
            kind=qualified_name(type(exc)),
            message=safe_message(exc),
            code=exception_code(exc),
            file=(innermost.file or "") if innermost else "",
            line=(innermost.line or 0) if innermost else 0,
            frames=frames,
            lineage=tuple(qualified_name(base) for base in type(exc).__mro__ if issubclass(base, BaseException)),
            cause=cause,
            exception=exc,
        )

    @property
    def short_kind(self) -> str:
        return short_name(self.kind)

    def chain(self) -> List["FailureEvent"]:
        events: List[FailureEvent] = []
        current: Optional[FailureEvent] = self
        seen: set[int] = set()
        while current is not None and id(current) not in seen:
            seen.add(id(current))
            events.append(current)
            current = current.cause
        return events

    def trace_as_string(self) -> str:
        lines = ["Traceback (most recent call last):"]
        lines.extend(frame.render() for frame in self.frames)
        lines.append(f"{self.kind}: {self.message}" if self.message else self.kind)
        return "\n".join(lines)

    def identity(self) -> Dict[str, Any]:
        return {"original_exception": self.kind, "original_message": self.message}


def as_event(failure: Union[BaseException, FailureEvent]) -> FailureEvent:
    if isinstance(failure, FailureEvent):
        return failure
    return FailureEvent.from_exception(failure)
