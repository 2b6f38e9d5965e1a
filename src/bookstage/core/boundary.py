"""Suspense and error boundary for a single render invocation.

Each invocation moves through::

    PENDING -> RESOLVED   page rendered
    PENDING -> FAILED     InvalidId, NotFound or ServerError

``PENDING`` is entered once at the start and left exactly once. Failures are
turned into a fallback document and a status code and returned as a value,
never raised. Applying the status to a live response is the caller's job.
"""

import asyncio
import enum
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from bookstage import markup
from bookstage.core.errors import InvalidId, NotFound, PageError, ServerError
from bookstage.core.pages import PageRoute
from bookstage.core.resource import ResourceCell
from bookstage.core.routes import ResolvedParams

logger = logging.getLogger(__name__)


class RenderState(enum.Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass(frozen=True)
class StatusPolicy:
    """HTTP status per failure kind.

    ``server_error`` defaults to 404 so backend failures look like missing
    pages to callers. Set it to 500 to expose them.
    """

    invalid_id: int = 400
    not_found: int = 404
    server_error: int = 404

    def status_for(self, error: PageError) -> int:
        if isinstance(error, InvalidId):
            return self.invalid_id
        if isinstance(error, NotFound):
            return self.not_found
        return self.server_error


@dataclass(frozen=True)
class PageOutcome:
    """Terminal result of a render invocation."""

    state: RenderState
    document: str
    status: int
    params: ResolvedParams
    error: PageError | None = None

    @property
    def ok(self) -> bool:
        return self.state is RenderState.RESOLVED


TransitionListener = Callable[[ResolvedParams, RenderState], None]
FallbackView = Callable[[Sequence[PageError]], str]


class ErrorBoundary:
    """Drives one page route through fetch, render and failure mapping."""

    def __init__(
        self,
        route: PageRoute,
        cell: ResourceCell,
        *,
        policy: StatusPolicy | None = None,
        on_transition: TransitionListener | None = None,
        fallback: FallbackView = markup.error_page,
        placeholder: Callable[[], str] = markup.loading_page,
    ) -> None:
        """Initialize boundary.

        Args:
            route: Page route to render
            cell: Resource cell wrapping ``route.load``
            policy: Status mapping for failures
            on_transition: Called with each state entered
            fallback: Builds the error document from the failures
            placeholder: Builds the loading document
        """
        self._route = route
        self._cell = cell
        self._policy = policy or StatusPolicy()
        self._on_transition = on_transition
        self._fallback = fallback
        self._placeholder = placeholder

    @property
    def route(self) -> PageRoute:
        return self._route

    @property
    def policy(self) -> StatusPolicy:
        return self._policy

    def placeholder(self) -> str:
        """Loading view shown while an invocation is pending.

        Never persisted as an artifact.
        """
        return self._placeholder()

    async def render(self, params: ResolvedParams) -> PageOutcome:
        """Run one invocation to a terminal state.

        Raises:
            asyncio.CancelledError: If the invocation is abandoned
        """
        self._notify(params, RenderState.PENDING)

        try:
            document = await self._resolve(params)
        except PageError as e:
            return self._fail(params, e)

        self._notify(params, RenderState.RESOLVED)
        return PageOutcome(RenderState.RESOLVED, document, 200, params)

    async def _resolve(self, params: ResolvedParams) -> str:
        key = self._route.resolve_key(params)

        try:
            record = await self._cell.get(key)
        except asyncio.CancelledError:
            raise
        except PageError:
            raise
        except Exception as e:
            raise ServerError.from_exception(e) from e

        if record is None:
            raise NotFound(key, self._route.not_found_message)

        try:
            return self._route.render(record)
        except Exception as e:
            logger.exception(f"Rendering {self._route.template.pattern} failed for {key!r}")
            raise ServerError.from_exception(e) from e

    def _fail(self, params: ResolvedParams, error: PageError) -> PageOutcome:
        status = self._policy.status_for(error)
        self._notify(params, RenderState.FAILED)
        return PageOutcome(RenderState.FAILED, self._fallback([error]), status, params, error)

    def _notify(self, params: ResolvedParams, state: RenderState) -> None:
        if self._on_transition is not None:
            self._on_transition(params, state)
