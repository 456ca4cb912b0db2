from __future__ import annotations

import io
import logging
import mmap
import socket
import sys
import threading
import types
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from failures.events import MAX_CAUSE_DEPTH, Code, FailureEvent, StackFrame, as_event, qualified_name

logger = logging.getLogger(__name__)

TransportRecord = Dict[str, Any]
Constructor = Callable[[str, Code], BaseException]

RESOURCE_PLACEHOLDER = "[resource]"
RECURSION_PLACEHOLDER = "[recursion]"
GENERIC_KIND = qualified_name(Exception)
MAX_ARG_DEPTH = 8

_PRIMITIVES = (str, int, float, bool, type(None))
_RESOURCE_TYPES = (
    io.IOBase,
    socket.socket,
    mmap.mmap,
    type(threading.Lock()),
    type(threading.RLock()),
    types.FrameType,
    types.TracebackType,
    types.GeneratorType,
    types.CoroutineType,
    types.AsyncGeneratorType,
)


def _default_constructor(cls: type) -> Constructor:
    def build(message: str, code: Code) -> BaseException:
        return cls(message)

    return build


class ExceptionRegistry:
    """
    Maps a kind identifier ("module.QualName") to a constructor taking
    ``(message, code)``.

    Explicit registrations win; otherwise the dotted path is looked up among
    already-imported modules and accepted only if it names a BaseException
    subclass. Unknown kinds resolve to None and callers fall back to a
    generic Exception.
    """

    def __init__(self, *, allow_lookup: bool = True):
        self.allow_lookup = allow_lookup
        self._constructors: Dict[str, Constructor] = {}

    def register(self, kind: Union[str, type], constructor: Optional[Constructor] = None) -> None:
        if isinstance(kind, type):
            constructor = constructor or _default_constructor(kind)
            kind = qualified_name(kind)
        if constructor is None:
            raise ValueError(f"constructor required when registering {kind} by name")
        self._constructors[kind] = constructor

    def resolve(self, kind: str) -> Optional[Constructor]:
        if kind in self._constructors:
            return self._constructors[kind]
        if not self.allow_lookup:
            return None
        cls = _loaded_exception_class(kind)
        if cls is None:
            return None
        return _default_constructor(cls)


def _loaded_exception_class(kind: str) -> Optional[type]:
    module_name, _, qualname = kind.rpartition(".")
    if not module_name:
        return None
    # Only modules the process already imported are searched; a payload never triggers an import.
    # Nested classes: walk back until a loaded module is found.
    parts = qualname.split(".")
    while module_name:
        target: Any = sys.modules.get(module_name)
        if target is None:
            module_name, _, head = module_name.rpartition(".")
            parts.insert(0, head)
            continue
        for part in parts:
            target = getattr(target, part, None)
            if target is None:
                return None
        if isinstance(target, type) and issubclass(target, BaseException):
            return target
        return None
    return None


class ExceptionSerializer:
    """
    Converts failures to and from a flat, primitive-only dict that can cross
    the Celery boundary (json serializer) and be rebuilt on a worker.
    """

    def __init__(self, registry: Optional[ExceptionRegistry] = None):
        self.registry = registry or ExceptionRegistry()

    def to_dict(self, failure: Union[BaseException, FailureEvent]) -> TransportRecord:
        return self._to_dict(as_event(failure), depth=0)

    def _to_dict(self, event: FailureEvent, *, depth: int) -> TransportRecord:
        data: TransportRecord = {
            "class": event.kind,
            "message": event.message,
            "code": event.code if isinstance(event.code, (int, str)) else 0,
            "file": event.file,
            "line": event.line,
            "lineage": list(event.lineage),
            "trace": [self._frame_to_dict(frame) for frame in event.frames],
        }
        if event.cause is not None and depth + 1 < MAX_CAUSE_DEPTH:
            data["previous"] = self._to_dict(event.cause, depth=depth + 1)
        return data

    def _frame_to_dict(self, frame: StackFrame) -> Dict[str, Any]:
        return {
            "file": frame.file,
            "line": frame.line,
            "function": frame.function,
            "class": frame.enclosing_type,
            "type": frame.call_type,
            "args": self.serialize_args(frame.args),
        }

    def serialize_args(self, args: List[Any]) -> List[Any]:
        return [self._serialize_value(arg, depth=0, seen=set()) for arg in args]

    def _serialize_value(self, value: Any, *, depth: int, seen: set[int]) -> Any:
        if isinstance(value, _PRIMITIVES):
            return value
        if isinstance(value, _RESOURCE_TYPES):
            return RESOURCE_PLACEHOLDER
        if isinstance(value, (list, tuple, set, frozenset, Mapping)):
            if id(value) in seen or depth >= MAX_ARG_DEPTH:
                return RECURSION_PLACEHOLDER
            seen = seen | {id(value)}
            if isinstance(value, Mapping):
                return {
                    str(key): self._serialize_value(item, depth=depth + 1, seen=seen)
                    for key, item in value.items()
                }
            return [self._serialize_value(item, depth=depth + 1, seen=seen) for item in value]
        return type(value).__qualname__

    def from_dict(self, data: Mapping[str, Any]) -> FailureEvent:
        """Rebuild an event; never raises, unknown kinds degrade to a generic Exception."""
        if not isinstance(data, Mapping):
            data = {}
        return self._from_dict(data, depth=0)

    def _from_dict(self, data: Mapping[str, Any], *, depth: int) -> FailureEvent:
        kind = str(data.get("class") or GENERIC_KIND)
        message = str(data.get("message") or "")
        code = _coerce_code(data.get("code", 0))

        exception, resolved_kind = self._construct(kind, message, code)
        event = FailureEvent(
            kind=resolved_kind,
            message=message,
            code=code,
            lineage=_coerce_lineage(data.get("lineage"), resolved_kind, kind),
            frames=[_frame_from_dict(item) for item in data.get("trace") or [] if isinstance(item, Mapping)],
            exception=exception,
        )

        file = data.get("file")
        if isinstance(file, str) and file:
            event.file = file
        line = data.get("line")
        if isinstance(line, int) and not isinstance(line, bool) and line > 0:
            event.line = line

        previous = data.get("previous")
        if isinstance(previous, Mapping) and depth < MAX_CAUSE_DEPTH:
            event.cause = self._from_dict(previous, depth=depth + 1)
        return event

    def _construct(self, kind: str, message: str, code: Code) -> tuple[BaseException, str]:
        try:
            constructor = self.registry.resolve(kind)
        except Exception as exc:  # noqa: BLE001
            logger.debug("Resolving %s failed: %s", kind, exc)
            constructor = None
        if constructor is not None:
            try:
                return constructor(message, code), kind
            except Exception as exc:  # noqa: BLE001
                logger.debug("Falling back to generic exception for %s: %s", kind, exc)
        else:
            logger.debug("Exception kind %s is not resolvable; using generic exception", kind)
        return Exception(message), GENERIC_KIND


def _coerce_code(value: Any) -> Code:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, str)):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return 0


def _coerce_lineage(value: Any, resolved_kind: str, original_kind: str) -> tuple[str, ...]:
    if resolved_kind != original_kind:
        return (GENERIC_KIND, qualified_name(BaseException))
    if isinstance(value, (list, tuple)):
        return tuple(str(item) for item in value)
    return (resolved_kind,)


def _frame_from_dict(data: Mapping[str, Any]) -> StackFrame:
    line = data.get("line")
    return StackFrame(
        file=data.get("file") if isinstance(data.get("file"), str) else None,
        line=line if isinstance(line, int) and not isinstance(line, bool) else None,
        function=str(data.get("function") or ""),
        enclosing_type=data.get("class") if isinstance(data.get("class"), str) else None,
        call_type=data.get("type") if isinstance(data.get("type"), str) else None,
        args=list(data["args"]) if isinstance(data.get("args"), list) else [],
    )
