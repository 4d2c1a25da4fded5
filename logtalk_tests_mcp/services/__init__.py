"""Services package.

Exposes the testing service and shared result types used by the MCP handlers.
"""

from ..config import Settings
from ..core.context import WorkspaceContext
from ..core.coverage import CoverageProjector
from ..core.runner import DiagnosticsCollector, LogtalkProcessRunner, RunCoordinator, TestRunner
from ..core.tree import InvalidationTracker, TreeSynchronizer
from .base import (
    ErrorCode,
    ServiceError,
    ServiceResult,
)
from .testing import TestingService

__all__ = [
    # Base
    "ServiceResult",
    "ServiceError",
    "ErrorCode",
    # Services
    "TestingService",
    "create_testing_service",
]


# =============================================================================
# Factory
# =============================================================================

def create_testing_service(
    settings: Settings,
    runner: TestRunner | None = None,
) -> TestingService:
    """
    Wire one workspace context into all components.

    Args:
        settings: Server configuration
        runner: Test runner (defaults to a LogtalkProcessRunner for the backend)
    """
    context = WorkspaceContext(settings.workspace_roots)
    projector = CoverageProjector(context)
    diagnostics = DiagnosticsCollector()

    if runner is None:
        runner = LogtalkProcessRunner(
            backend=settings.backend,
            logtalk_home=settings.logtalk_home,
            logtalk_user=settings.logtalk_user,
        )

    coordinator = RunCoordinator(
        context,
        TreeSynchronizer(context),
        projector,
        runner,
        reporter=diagnostics,
        timeout=settings.run_timeout,
        poll_delay=settings.poll_delay,
    )

    return TestingService(
        context,
        coordinator,
        projector,
        InvalidationTracker(context),
        diagnostics=diagnostics,
    )
