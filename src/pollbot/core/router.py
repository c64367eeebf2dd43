"""Router: the long-poll loop and the update dispatch engine.

This module implements the Router class that drives a bot. It:
- Long-polls the remote service for updates and tracks the offset
- Classifies each update into a session key and route family
- Runs the matching handler chain in its own task with the session's state
- Turns reply actions into outbound calls
- Reports handler failures through a pluggable error policy

Example:
    async def ping(event: Event, state: State[Counter]) -> Action:
        async with state.write() as counter:
            counter.value += 1
            return Action.reply_text(f"pong({counter.value}): {event.update.text}")

    router = Router(API(HttpTransport(token)))
    router.add_route(Route.message(Matcher.exact("ping")), Handler(ping, Counter()))
    await router.start()
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Coroutine, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, TypeVar

import structlog
from structlog.contextvars import bound_contextvars

from pollbot.models.message import ParseMode, SendMessageRequest, SendStickerRequest
from pollbot.models.update import GetUpdatesRequest, Update
from pollbot.utils.async_helpers import ClassificationError, RouterError, RoutingError
from pollbot.utils.metrics import MetricsRegistry, Timer

from .api import API
from .event import Event
from .handler import Action, ActionKind, Handler, HandlerFunc
from .route import Matcher, Route, classify
from .state import SessionStore, State

if TYPE_CHECKING:
    from pollbot.config.schema import BotConfig
    from pollbot.interfaces.transport import Transport

log = structlog.get_logger()

T = TypeVar("T")

ErrorHandler = Callable[[API, int, State[Any], Exception], Awaitable[None]]


async def default_error_handler(
    api: API,
    chat_id: int,
    state: State[Any],
    error: Exception,
) -> None:
    """Log the error and tell the chat about it."""
    log.error(
        "handler_error",
        chat_id=chat_id,
        error=str(error),
        error_type=type(error).__name__,
    )
    await api.send_message(SendMessageRequest(chat_id=chat_id, text=f"Handler error: {error}"))


class ShutdownHandle:
    """Stops a running router from another task or a signal handler.

    ``request()`` asks the poll loop to exit; an in-flight long-poll is
    abandoned rather than waited out. ``wait()`` returns once the loop has
    exited (and, when the router drains on shutdown, once in-flight
    dispatches are finished or cancelled).
    """

    def __init__(self, requested: asyncio.Event, stopped: asyncio.Event) -> None:
        self._requested = requested
        self._stopped = stopped

    def request(self) -> None:
        self._requested.set()

    @property
    def requested(self) -> bool:
        return self._requested.is_set()

    async def wait(self) -> None:
        await self._stopped.wait()


class Router:
    """Long-polls for updates and dispatches them to handler chains.

    Handlers are registered per route family with ``add_route`` before
    ``start()``. Within a family, handlers run in registration order; each
    one whose matcher accepts the update runs until one returns something
    other than ``Action.next()``. Updates of a family without handlers go to
    the ``Route.default()`` chain.

    Every update is dispatched in its own task, so a slow handler never
    holds up polling or other chats. Updates of the same session share one
    ``State`` cell and serialize only through its lock.
    """

    DEFAULT_POLL_TIMEOUT = 60
    DEFAULT_POLL_LIMIT = 100
    DEFAULT_RETRY_DELAY = 1.0
    DEFAULT_SHUTDOWN_TIMEOUT = 30.0

    def __init__(
        self,
        api: API,
        store: SessionStore | None = None,
        *,
        poll_timeout: int = DEFAULT_POLL_TIMEOUT,
        poll_limit: int = DEFAULT_POLL_LIMIT,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        drain_on_shutdown: bool = False,
        shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        """Initialize the Router.

        Args:
            api: Client for the remote service.
            store: Session state store. Defaults to an unbounded store.
            poll_timeout: Server-side long-poll timeout in seconds.
            poll_limit: Maximum updates fetched per poll.
            retry_delay: Pause after a failed poll, in seconds.
            drain_on_shutdown: Wait for in-flight dispatches when stopping.
            shutdown_timeout: How long to drain before cancelling stragglers.
            metrics: Registry to record into. Defaults to a private one.
        """
        self._api = api
        self._store = store if store is not None else SessionStore()
        self._poll_timeout = poll_timeout
        self._poll_limit = poll_limit
        self._retry_delay = retry_delay
        self._drain_on_shutdown = drain_on_shutdown
        self._shutdown_timeout = shutdown_timeout
        self._metrics = metrics if metrics is not None else MetricsRegistry()

        self._state: State[Any] | None = None
        self._error_handler: ErrorHandler = default_error_handler
        self._routes: dict[Route, list[tuple[Matcher, Handler[Any]]]] = {}
        self._registry: Mapping[Route, tuple[tuple[Matcher, Handler[Any]], ...]] | None = None

        self._last_update_id = 0
        self._active_tasks: set[asyncio.Task[None]] = set()

        # Lifecycle state
        self._running = False
        self._shutdown_requested = asyncio.Event()
        self._stopped = asyncio.Event()

    @classmethod
    def from_config(cls, config: BotConfig, transport: Transport | None = None) -> Router:
        """Build a router with transport, store and runtime options from config.

        Args:
            config: Loaded bot configuration.
            transport: Transport to use instead of the HTTP one (e.g. a FakeServer).
        """
        if transport is None:
            from pollbot.adapters.http import HttpTransport

            transport = HttpTransport.from_config(config.api, config.retry)

        return cls(
            API(transport),
            SessionStore(
                max_sessions=config.sessions.max_sessions,
                ttl=config.sessions.ttl,
            ),
            poll_timeout=config.polling.timeout,
            poll_limit=config.polling.limit,
            retry_delay=config.polling.retry_delay,
            drain_on_shutdown=config.runtime.drain_on_shutdown,
            shutdown_timeout=config.runtime.shutdown_timeout,
        )

    @property
    def api(self) -> API:
        return self._api

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def metrics(self) -> MetricsRegistry:
        return self._metrics

    @property
    def last_update_id(self) -> int:
        """Highest update id seen so far; the next poll asks for the one after."""
        return self._last_update_id

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stats(self) -> dict[str, int]:
        """Return dispatch statistics."""
        return {
            "updates_received": int(self._metrics.updates_received.total()),
            "updates_dispatched": int(self._metrics.updates_dispatched.total()),
            "errors_count": int(self._metrics.handler_errors.total()),
            "active_tasks": len(self._active_tasks),
            "sessions": len(self._store),
            "last_update_id": self._last_update_id,
        }

    def with_poll_timeout(self, seconds: int) -> Router:
        self._poll_timeout = seconds
        return self

    def with_state(self, state: T | State[T]) -> Router:
        """Use ``state`` as the initial state of every handler added afterwards."""
        self._state = state if isinstance(state, State) else State(state)
        return self

    def with_error_handler(self, func: ErrorHandler) -> Router:
        self._error_handler = func
        return self

    def add_route(self, route: Route, handler: Handler[Any] | HandlerFunc) -> Router:
        """Append ``handler`` to the chain of ``route``'s family.

        The route's matcher decides, per update, whether the handler runs.

        Raises:
            RouterError: If the router has already started.
        """
        if self._registry is not None:
            raise RouterError("Cannot add routes after the router has started")

        if not isinstance(handler, Handler):
            handler = Handler(handler)
        if self._state is not None:
            handler = handler.with_state(self._state)

        self._routes.setdefault(Route.any(route), []).append((route.matcher, handler))
        log.debug("route_added", route=str(route), handler=handler.name)
        return self

    def shutdown(self) -> ShutdownHandle:
        return ShutdownHandle(self._shutdown_requested, self._stopped)

    async def start(self) -> None:
        """Run the poll loop until shutdown is requested.

        Raises:
            RouterError: If the router was already started.
        """
        if self._registry is not None:
            raise RouterError("Router has already been started")

        self._registry = MappingProxyType(
            {route: tuple(chain) for route, chain in self._routes.items()}
        )
        self._running = True
        log.info(
            "router_started",
            routes=[str(route) for route in self._registry],
            poll_timeout=self._poll_timeout,
        )

        try:
            while not self._shutdown_requested.is_set():
                updates = await self._poll()
                if not updates:
                    continue

                for update in updates:
                    self._last_update_id = max(self._last_update_id, update.update_id)
                    self._metrics.updates_received.inc(labels={"kind": update.kind})
                    self._spawn(update)

            log.info("shutdown_signal_received", last_update_id=self._last_update_id)
        finally:
            self._running = False
            if self._drain_on_shutdown:
                await self._wait_for_tasks()
            self._stopped.set()
            log.info("router_stopped", **self.stats)

    async def dispatch(self, update: Update) -> None:
        """Route one update through its handler chain.

        Never raises: failures go to the error policy or the log.
        """
        try:
            key, route = classify(update)
        except ClassificationError as e:
            log.warning("update_dropped", update_id=update.update_id, reason=str(e))
            self._metrics.updates_dropped.inc()
            return

        with bound_contextvars(
            update_id=update.update_id,
            session_key=key,
            route=str(route),
        ):
            self._metrics.active_dispatches.inc()
            try:
                with Timer(self._metrics.dispatch_duration, labels={"route": route.family}):
                    await self._run_chain(key, route, update)
            except Exception as e:
                log.exception("dispatch_failed", error=str(e))
            finally:
                self._metrics.active_dispatches.dec()

    async def _run_chain(self, key: int, route: Route, update: Update) -> None:
        registry = self._registry if self._registry is not None else self._routes
        chain = registry.get(route)
        if chain is None:
            chain = registry.get(Route.default())
        if chain is None:
            log.warning("no_handlers_for_route")
            await self._report_error(
                key, State(None), RoutingError(f"No handlers installed for route: {route}")
            )
            return

        self._metrics.updates_dispatched.inc(labels={"family": route.family})
        event = Event(self._api, update)

        for matcher, handler in chain:
            if not route.with_matcher(matcher).match_update(update):
                continue

            async with self._store.checkout(key, handler.initial_state) as state:
                self._metrics.sessions.set(len(self._store))
                try:
                    action = await handler.run(event, state)
                    if action.is_reply:
                        await self._reply(key, action)
                except Exception as e:
                    await self._report_error(key, state, e)
                    return
            if action.kind is ActionKind.NEXT:
                continue
            return

        log.debug("chain_finished_without_action")

    async def _reply(self, chat_id: int, action: Action) -> None:
        payload = action.payload or ""
        if action.kind is ActionKind.REPLY_STICKER:
            await self._api.send_sticker(SendStickerRequest(chat_id=chat_id, sticker=payload))
        else:
            parse_mode = ParseMode.MARKDOWN_V2 if action.kind is ActionKind.REPLY_MARKDOWN else None
            await self._api.send_message(
                SendMessageRequest(chat_id=chat_id, text=payload, parse_mode=parse_mode)
            )
        self._metrics.replies_sent.inc(labels={"kind": action.kind})

    async def _report_error(self, chat_id: int, state: State[Any], error: Exception) -> None:
        self._metrics.handler_errors.inc(labels={"error_type": type(error).__name__})
        try:
            await self._error_handler(self._api, chat_id, state, error)
        except Exception as e:
            log.error(
                "error_handler_failed",
                chat_id=chat_id,
                error=str(e),
                original_error=str(error),
            )

    async def _poll(self) -> list[Update] | None:
        """Fetch the next batch of updates.

        Returns None when the poll failed or was interrupted by shutdown.
        """
        request = GetUpdatesRequest(
            offset=self._last_update_id + 1,
            limit=self._poll_limit,
            timeout=self._poll_timeout,
        )
        log.debug("polling_updates", offset=request.offset, timeout=self._poll_timeout)

        try:
            return await self._until_shutdown(self._api.get_updates(request))
        except Exception as e:
            log.error("poll_failed", error=str(e), error_type=type(e).__name__)
            self._metrics.poll_errors.inc()
            await self._until_shutdown(asyncio.sleep(self._retry_delay))
            return None

    async def _until_shutdown(self, coro: Coroutine[Any, Any, T]) -> T | None:
        """Await ``coro`` unless shutdown is requested first, then cancel it."""
        task = asyncio.ensure_future(coro)
        stop = asyncio.ensure_future(self._shutdown_requested.wait())
        try:
            done, _ = await asyncio.wait({task, stop}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop.cancel()
            if not task.done():
                task.cancel()

        if task in done:
            return task.result()

        await asyncio.gather(task, return_exceptions=True)
        return None

    def _spawn(self, update: Update) -> None:
        task = asyncio.create_task(self.dispatch(update), name=f"dispatch_{update.update_id}")
        self._active_tasks.add(task)
        task.add_done_callback(self._active_tasks.discard)

    async def _wait_for_tasks(self) -> None:
        """Wait for in-flight dispatches, cancelling those past the timeout."""
        if not self._active_tasks:
            return

        log.info("waiting_for_active_tasks", count=len(self._active_tasks))

        done, pending = await asyncio.wait(
            set(self._active_tasks),
            timeout=self._shutdown_timeout,
        )

        if pending:
            log.warning("cancelling_pending_tasks", count=len(pending))
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        log.info("tasks_completed", completed=len(done), cancelled=len(pending))
