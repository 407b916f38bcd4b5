"""
ContextCollector Class - Captures the environment around an error

This module snapshots ambient facts (URL, user agent, network status,
session identity) into an immutable ErrorContext.
"""

from dataclasses import fields, replace
from typing import Any, Callable, Dict, Mapping, Optional

from models.data_models import Environment, ErrorContext, NetworkInfo, SessionContext
from services.parser import ReportParser
from utils.helpers import now_ms
from utils.logging import get_logger

logger = get_logger(__name__, component="context")

EnvironmentProbe = Callable[[], Environment]


class ContextCollector:
    """
    Builds ErrorContext snapshots.
    Responsibilities:
    - Read the environment through the injected probe
    - Attach session and user identity from the injected session
    - Merge caller overrides into a new context
    """

    def __init__(
        self,
        session: SessionContext,
        probe: Optional[EnvironmentProbe] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.session = session
        self.probe = probe
        self.clock = clock

    def collect(self) -> ErrorContext:
        """Snapshot the current environment; every field falls back safely"""
        env = self._probe()

        return ErrorContext(
            url=env.url or "",
            user_agent=env.user_agent or "",
            timestamp=self.clock(),
            user_id=self.session.user_id,
            session_id=self.session.session_id,
            network_info=NetworkInfo(
                online=env.online if env.online is not None else True,
                connection_type=env.connection_type,
                effective_type=env.effective_type,
            ),
        )

    @staticmethod
    def merge(context: ErrorContext, overrides: Optional[Mapping[str, Any]]) -> ErrorContext:
        """
        New context with overrides applied. Overrides win; keys may be
        snake_case or camelCase and unknown keys are ignored.
        """
        if not overrides:
            return context

        if isinstance(overrides, ErrorContext):
            overrides = {f.name: getattr(overrides, f.name) for f in fields(ErrorContext)}

        changes: Dict[str, Any] = ReportParser.context_fields(overrides)
        return replace(context, **changes) if changes else context

    def _probe(self) -> Environment:
        if self.probe is None:
            return Environment()
        try:
            return self.probe() or Environment()
        except Exception:
            logger.warning("Environment probe failed, using fallbacks", exc_info=True)
            return Environment()
