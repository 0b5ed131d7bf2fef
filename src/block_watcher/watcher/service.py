"""
Block watcher orchestrator.

This is the main entry point of the package.

The Core Problem
----------------
A consumer wants to react to every new block of a chain exactly once, in
order, and to learn when a block it already reacted to was replaced. The
chain source only answers two questions: "what is the block at height N?"
and "what is the current tip height?". Everything else is built here.

How It Works
------------
The watcher owns a bounded window of recently confirmed blocks and runs a
single poll loop. Each cycle:

1. **Reorg check**: Re-fetch the newest window entry. If its hash changed,
   repair the window and notify reorg subscribers, then check the newest
   entry again. Repair can take a while and the chain may reorg again
   meanwhile, so the loop only moves on after a check sees no change.
2. **Fetch next**: Fetch the height above the window (or the start height
   for an empty window) exactly once. A miss means no new block yet.
3. **Append or idle**: On a hit, append the block, evict the oldest entry if
   the window is full, notify new-block subscribers, and start the next
   cycle right away to catch up. On a miss, sleep for the poll interval.

Cycles never overlap. A cycle only starts after the previous one finished,
including every callback, so the window needs no locking.

Lifecycle
---------
::

    IDLE --> RUNNING --> STOPPED

`start()` resolves the start height and spawns the poll loop as an asyncio
task. `stop()` requests shutdown, observed at the next cycle boundary or
sleep. `join()` waits for the loop to end and re-raises a fatal error.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Generic

from block_watcher import metrics
from block_watcher.types import BlockT

from .config import WatcherConfig
from .dispatch import CallbackDispatcher, NewBlockCallback, ReorgedBlockCallback
from .exceptions import AlreadyStartedError, WatcherError, WatcherStoppedError
from .fetch import BlockFetcher, GetBlockFn, GetChainHeadFn
from .reorg import ReorgDetector
from .shutdown import ShutdownSignal, SleepFn
from .states import WatcherState
from .window import ObservedWindow

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class WatcherProgress:
    """
    Snapshot of watcher state.

    Provides a view for monitoring and logging.
    """

    state: WatcherState
    """Current lifecycle state."""

    start_height: int | None = None
    """Height the watcher started from. None until started."""

    highest_height: int | None = None
    """Height of the newest confirmed block."""

    window_size: int = 0
    """Blocks retained for reorg comparison."""

    blocks_observed: int = 0
    """New blocks appended this session."""

    reorgs_handled: int = 0
    """Repair passes that replaced at least one block."""

    new_block_subscribers: int = 0
    """Registered new-block callbacks."""

    reorged_block_subscribers: int = 0
    """Registered reorg callbacks."""


@dataclass(slots=True)
class BlockWatcher(Generic[BlockT]):
    """
    Polls a chain source, tracks its tip, and reports new and reorged blocks.

    The watcher is generic over the block type. Any object with `height` and
    `hash` attributes works, and subscribers receive exactly the objects the
    source returned.

    Correctness Precondition
    ------------------------
    Only the newest window entry is re-checked before each poll. The source
    must guarantee that if that block is unchanged, no older block changed.

    Example
    -------
    ::

        watcher = BlockWatcher(get_block=rpc.get_block, get_chain_head=rpc.head)

        @watcher.on_new_block
        async def index(block):
            ...

        await watcher.start()
    """

    get_block: GetBlockFn[BlockT]
    """Source function: height -> block or None."""

    get_chain_head: GetChainHeadFn
    """Source function: () -> tip height or None."""

    config: WatcherConfig = field(default_factory=WatcherConfig)
    """Immutable watcher settings."""

    pre_start_blocks: Sequence[BlockT] = field(default=())
    """
    Previously confirmed blocks to seed the window with.

    Must be ascending and contiguous, and end at `start_block - 1` when a
    start block is configured.
    """

    sleep: SleepFn | None = field(default=None)
    """
    Replacement wait function (injectable for testing).

    None uses a wait that is interrupted immediately by `stop()`.
    """

    _state: WatcherState = field(default=WatcherState.IDLE)
    """Current lifecycle state."""

    _start_height: int | None = field(default=None)
    """Resolved start height."""

    _blocks_observed: int = field(default=0)
    """Counter for appended blocks."""

    _new_block_callbacks: list[NewBlockCallback[BlockT]] = field(default_factory=list)
    """New-block subscribers in registration order."""

    _reorged_block_callbacks: list[ReorgedBlockCallback[BlockT]] = field(default_factory=list)
    """Reorg subscribers in registration order."""

    _task: asyncio.Task[None] | None = field(default=None)
    """Poll loop task. Created by `start()`."""

    _window: ObservedWindow[BlockT] = field(init=False)
    """Recently confirmed blocks."""

    _shutdown: ShutdownSignal = field(init=False)
    """Stop signal shared with every component."""

    _fetcher: BlockFetcher[BlockT] = field(init=False)
    """Retrying access to the source."""

    _dispatcher: CallbackDispatcher[BlockT] = field(init=False)
    """Ordered subscriber delivery."""

    _detector: ReorgDetector[BlockT] = field(init=False)
    """Reorg detection and window repair."""

    def __post_init__(self) -> None:
        """
        Validate the seeded window and wire up components.

        Raises:
            InvalidWindowError: If `pre_start_blocks` is malformed.
        """
        self._window = ObservedWindow.from_blocks(
            self.pre_start_blocks,
            capacity=self.config.max_reorg_depth,
            start_block=self.config.start_block,
        )

        # One signal for everything, so a single stop() reaches every wait.
        self._shutdown = ShutdownSignal(sleep_fn=self.sleep)

        self._fetcher = BlockFetcher(
            get_block=self.get_block,
            get_chain_head=self.get_chain_head,
            retry_delay=self.config.retry_delay,
            shutdown=self._shutdown,
        )
        self._dispatcher = CallbackDispatcher(
            handling=self.config.task_error_handling,
            retry_delay=self.config.retry_delay,
            shutdown=self._shutdown,
        )

        # The detector reports replacements back through us,
        # so reorg subscribers stay owned by the watcher.
        self._detector = ReorgDetector(
            window=self._window,
            fetcher=self._fetcher,
            on_reorged_block=self._process_reorged_block_callbacks,
        )

        self._update_window_metrics()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def state(self) -> WatcherState:
        """Current lifecycle state."""
        return self._state

    @property
    def is_running(self) -> bool:
        """Check if the poll loop is active."""
        return self._state.is_running

    async def start(self) -> None:
        """
        Resolve the start height and spawn the poll loop.

        The start height is the configured `start_block`, or else the chain
        head, polled until the source reports one. A seeded window is fully
        reorg-checked before the first poll.

        Returns once the poll loop task has been created. Use `join()` to wait
        for it to finish.

        Raises:
            AlreadyStartedError: If the watcher is not idle. State is unchanged.
        """
        if self._state is not WatcherState.IDLE:
            raise AlreadyStartedError(f"Watcher already started (state {self._state.name})")

        # Claim the state before the first await so a concurrent start() fails.
        self._transition_to(WatcherState.RUNNING)

        try:
            if self.config.start_block is not None:
                self._start_height = self.config.start_block
            else:
                self._start_height = await self._fetcher.poll_chain_head()

            logger.info(
                "Starting block watcher at height %d (window %s)",
                self._start_height,
                self._window.heights() or "empty",
            )

            # The seeded blocks may have been replaced while we were offline.
            if self._window:
                await self._detector.handle_detected_reorg()
        except WatcherStoppedError:
            logger.info("Block watcher stopped during startup")
            self._finish()
            return
        except Exception:
            self._finish()
            raise

        self._task = asyncio.create_task(self._run(), name="block-watcher-poll")

    def stop(self) -> None:
        """
        Request shutdown.

        The poll loop exits at the next cycle boundary or sleep. A watcher
        that was never started becomes stopped immediately. Calling `stop()`
        more than once is harmless.
        """
        self._shutdown.set()
        if self._state is WatcherState.IDLE:
            self._transition_to(WatcherState.STOPPED)

    async def join(self) -> None:
        """
        Wait for the poll loop to finish.

        Raises:
            Exception: Whatever fatal error ended the poll loop.
        """
        if self._task is not None:
            await self._task

    async def _run(self) -> None:
        """Poll loop: one cycle after another until stopped."""
        try:
            while not self._shutdown.is_set:
                if await self.poll_once():
                    # Catching up. Go again at once but let other tasks run.
                    await asyncio.sleep(0)
                else:
                    await self._shutdown.sleep(self.config.poll_interval)
        except WatcherStoppedError:
            logger.debug("Poll loop observed shutdown")
        except Exception:
            logger.exception("Poll loop failed")
            raise
        finally:
            self._finish()
            logger.info("Block watcher stopped at height %s", self._window.highest_height)

    def _finish(self) -> None:
        if self._state is WatcherState.RUNNING:
            self._transition_to(WatcherState.STOPPED)

    def _transition_to(self, new_state: WatcherState) -> None:
        """
        Transition to a new lifecycle state.

        Raises:
            ValueError: If transition is not allowed.
        """
        if not self._state.can_transition_to(new_state):
            raise ValueError(f"Invalid state transition: {self._state.name} -> {new_state.name}")

        self._state = new_state

    # -------------------------------------------------------------------------
    # Poll cycle
    # -------------------------------------------------------------------------

    async def poll_once(self) -> bool:
        """
        Run one poll cycle.

        Returns:
            True if a new block was appended, False if none was available.

        Raises:
            WatcherError: If no start height is known and the window is empty.
            WatcherStoppedError: If shutdown was requested.
        """
        self._shutdown.raise_if_set()

        await self._settle_reorgs()

        next_height = self._next_height()
        logger.debug("Polling for block %d", next_height)

        # Single attempt. A miss is not an error, the block is just not there yet.
        block = await self._fetcher.fetch_block(next_height)
        if block is None:
            return False

        await self._handle_new_block(block)
        return True

    async def _settle_reorgs(self) -> None:
        """Repair the window until a tip check sees no change."""
        while await self._detector.is_tip_reorged():
            await self._detector.handle_detected_reorg()
            self._update_window_metrics()

    def _next_height(self) -> int:
        highest = self._window.highest_height
        if highest is not None:
            return highest + 1
        if self._start_height is None:
            raise WatcherError("No start block provided and no blocks saved")
        return self._start_height

    async def _handle_new_block(self, block: BlockT) -> None:
        evicted = self._window.append(block)
        self._blocks_observed += 1

        metrics.blocks_observed.inc()
        self._update_window_metrics()

        if evicted is not None:
            logger.debug("Evicted block %d from window", evicted.height)
        logger.info("New block %d (%s)", block.height, block.hash)

        await self._process_new_block_callbacks(block)

    def _update_window_metrics(self) -> None:
        metrics.window_size.set(len(self._window))
        highest = self._window.highest_height
        if highest is not None:
            metrics.highest_block_height.set(highest)

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def on_new_block(self, callback: NewBlockCallback[BlockT]) -> NewBlockCallback[BlockT]:
        """
        Subscribe to newly confirmed blocks.

        Callbacks run in registration order and cannot be removed.
        Returns the callback, so this also works as a decorator.
        """
        self._new_block_callbacks.append(callback)
        return callback

    def on_reorged_block(
        self,
        callback: ReorgedBlockCallback[BlockT],
    ) -> ReorgedBlockCallback[BlockT]:
        """
        Subscribe to replaced blocks.

        The callback receives (updated_block, pre_reorg_block). For a reorg
        spanning several heights it is called once per height, oldest first.
        Returns the callback, so this also works as a decorator.
        """
        self._reorged_block_callbacks.append(callback)
        return callback

    async def _process_new_block_callbacks(self, block: BlockT) -> None:
        # Snapshot: subscribers added during dispatch start with the next event.
        await self._dispatcher.dispatch_new_block(tuple(self._new_block_callbacks), block)

    async def _process_reorged_block_callbacks(
        self,
        block: BlockT,
        pre_reorg_block: BlockT,
    ) -> None:
        await self._dispatcher.dispatch_reorged_block(
            tuple(self._reorged_block_callbacks),
            block,
            pre_reorg_block,
        )

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def get_highest_block(self) -> BlockT | None:
        """Newest confirmed block, or None before the first one."""
        return self._window.highest

    def get_window(self) -> list[BlockT]:
        """Copy of the retained blocks, oldest first."""
        return list(self._window)

    async def is_at_chain_head(self) -> bool:
        """
        Check if the newest confirmed block is the source's chain tip.

        The chain head is polled until the source reports one.

        Returns:
            False for an empty window, else whether the heights match.
        """
        highest = self._window.highest
        if highest is None:
            return False
        return highest.height == await self._fetcher.poll_chain_head()

    def get_progress(self) -> WatcherProgress:
        """
        Get current watcher progress.

        Returns:
            Snapshot of watcher state for monitoring.
        """
        return WatcherProgress(
            state=self._state,
            start_height=self._start_height,
            highest_height=self._window.highest_height,
            window_size=len(self._window),
            blocks_observed=self._blocks_observed,
            reorgs_handled=self._detector.reorgs_handled,
            new_block_subscribers=len(self._new_block_callbacks),
            reorged_block_subscribers=len(self._reorged_block_callbacks),
        )
