"""
Command router: the fixed set of operations clients can invoke.

Operations register themselves with the ``operation`` decorator, declaring a
pydantic model for their arguments. The model's JSON schema is what clients
see as the operation's input schema.
"""

from dataclasses import dataclass, field
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from termhook.capture.service import CaptureService
from termhook.logger import get_logger

logger = get_logger(__name__)

DEFAULT_OUTPUT_LINES = 100

OperationHandler = Callable[[CaptureService, Any], dict[str, Any]]


@dataclass
class Operation:
    """A named operation with its argument model and handler."""

    name: str
    description: str
    handler: OperationHandler
    args_model: type[BaseModel] | None = None

    @property
    def input_schema(self) -> dict[str, Any]:
        if self.args_model is None:
            return {"type": "object", "properties": {}}
        return self.args_model.model_json_schema()

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


_OPERATIONS: dict[str, Operation] = {}


def operation(
    name: str,
    description: str = "",
    args_model: type[BaseModel] | None = None,
):
    """Decorator to register a function as a router operation."""

    def decorator(fn: OperationHandler):
        _OPERATIONS[name] = Operation(
            name=name, description=description, handler=fn, args_model=args_model
        )
        return fn

    return decorator


# ─── Argument models ─────────────────────────────────────────────────


class GetOutputArgs(BaseModel):
    """Arguments for get-output."""

    model_config = ConfigDict(extra="ignore")

    query: str = Field(
        min_length=1,
        description=(
            "Session name or ID (e.g. \"zsh\", \"bash\", \"node\"). "
            "Use list-sessions to see available options."
        ),
    )
    maxLines: int = Field(
        DEFAULT_OUTPUT_LINES,
        ge=0,
        description="Number of lines to return (default: 100, 0 for all)",
    )


def _validation_message(error: ValidationError) -> str:
    for err in error.errors():
        if err["type"] == "missing" and err["loc"] and err["loc"][0] == "query":
            return "query is required. Use list-sessions to see available sessions."
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "arguments"
    return f"Invalid {location}: {first['msg']}"


# ─── Operations ──────────────────────────────────────────────────────


@operation(
    name="list-sessions",
    description=(
        "List all captured terminal sessions with their metadata "
        "(name, process ID, buffer size, activity)."
    ),
)
def list_sessions(service: CaptureService, args: None) -> dict[str, Any]:
    sessions = service.list_sessions()
    return {
        "success": True,
        "count": len(sessions),
        "sessions": [session.summary() for session in sessions],
    }


@operation(
    name="get-output",
    description=(
        "Get recent output from a terminal session buffer. "
        "Use list-sessions first to see available sessions."
    ),
    args_model=GetOutputArgs,
)
def get_output(service: CaptureService, args: GetOutputArgs) -> dict[str, Any]:
    session = service.resolve_session(args.query)
    if session is None:
        return {
            "success": False,
            "error": f'Session "{args.query}" not found',
            "availableSessions": [s.label for s in service.list_sessions()],
        }

    lines = session.tail(args.maxLines)
    return {
        "success": True,
        "session": session.label,
        "output": "\n".join(lines),
        "linesReturned": len(lines),
    }


# ─── Router ──────────────────────────────────────────────────────────


@dataclass
class OperationOutcome:
    """
    Result of invoking an operation.

    ``status`` is ``ok`` when the operation ran (its payload may still report
    ``success: false``), ``unknown_operation`` when no such operation exists,
    and ``error`` when the operation raised.
    """

    status: str
    payload: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


class CommandRouter:
    """Dispatches operation calls to handlers backed by a capture service."""

    def __init__(self, service: CaptureService):
        self.service = service
        self._operations = dict(_OPERATIONS)

    def describe(self) -> list[dict[str, Any]]:
        return [op.describe() for op in self._operations.values()]

    def has_operation(self, name: str) -> bool:
        return name in self._operations

    def invoke(self, name: str, arguments: dict[str, Any] | None = None) -> OperationOutcome:
        """
        Run an operation. Never raises.

        Args:
            name: Operation name, e.g. ``get-output``.
            arguments: Raw arguments as received from the client.
        """
        op = self._operations.get(name)
        if op is None:
            return OperationOutcome(
                status="unknown_operation", error=f"Unknown tool: {name}"
            )

        try:
            args = None
            if op.args_model is not None:
                try:
                    args = op.args_model.model_validate(arguments or {})
                except ValidationError as e:
                    return OperationOutcome(
                        status="ok",
                        payload={"success": False, "error": _validation_message(e)},
                    )
            payload = op.handler(self.service, args)
        except Exception as e:
            logger.error(f"Operation '{name}' failed: {e}")
            return OperationOutcome(
                status="error",
                payload={"success": False, "error": str(e)},
                error=str(e),
            )

        return OperationOutcome(status="ok", payload=payload)
