"""
Background worker thread for resource loading.

Loading and starting a sound can block on disk and decoder I/O. The loader
thread does that work off the tick loop and hands finished loops back through
a result queue; the mixer registers them on its own thread during update().
"""

import threading
import queue
import logging
from zone_audio.config import LoaderConfig
from zone_audio.errors import AudioLoadError

logger = logging.getLogger(__name__)


class LoadCommand:
    """Represents a resource request to be executed by the loader."""

    LOOP = 'loop'
    ONE_SHOT = 'one_shot'

    def __init__(self, command_type, path, volume=0.0, key=None, max_volume=1.0, category='music'):
        """
        Initialize a load command.

        Args:
            command_type (str): 'loop' (tracked, result posted back) or 'one_shot' (fire-and-forget)
            path (str): Resolved resource path
            volume (float): Volume the playback starts at
            key (str): Registry key for loops (zone id)
            max_volume (float): Ceiling of the track the loop will become
            category (str): 'music' or 'sfx', tells the mixer which registry owns the result
        """
        self.command_type = command_type
        self.path = path
        self.volume = volume
        self.key = key
        self.max_volume = max_volume
        self.category = category
        self._cancelled = threading.Event()

    def cancel(self):
        self._cancelled.set()

    @property
    def cancelled(self):
        return self._cancelled.is_set()

    def __repr__(self):
        return f"LoadCommand({self.command_type}, key={self.key!r}, path={self.path!r})"


class LoadResult:
    """Outcome of a loop command: exactly one of handle or error is set."""

    def __init__(self, command, handle=None, error=None):
        self.command = command
        self.handle = handle
        self.error = error

    @property
    def ok(self):
        return self.error is None


class LoaderWorker(threading.Thread):
    """
    Background thread for loading and starting playback.

    This worker processes load commands from a queue, preventing file and
    decoder I/O from blocking the tick loop. It never touches mixer state:
    loop results are posted to `result_queue` for the owner thread.
    """

    def __init__(self, backend, result_queue, stop_event=None,
                 queue_maxsize=LoaderConfig.LOADER_QUEUE_MAXSIZE):
        """
        Initialize the loader worker.

        Args:
            backend: Playback backend (None when no audio library is available)
            result_queue (queue.Queue): Receives LoadResult objects for loop commands
            stop_event (threading.Event): Event to signal shutdown
            queue_maxsize (int): Maximum size of command queue
        """
        super().__init__(daemon=True, name="LoaderWorker")

        self.backend = backend
        self.result_queue = result_queue
        self.stop_event = stop_event or threading.Event()
        self.command_queue = queue.Queue(maxsize=queue_maxsize)

        logger.info("LoaderWorker initialized")

    def enqueue_command(self, command):
        """
        Add a load command to the queue (non-blocking).

        Args:
            command (LoadCommand): Command to execute

        Returns:
            bool: True if command was enqueued, False if queue was full or the worker stopped
        """
        if self.stop_event.is_set():
            logger.warning(f"LoaderWorker stopped, dropping command: {command}")
            return False
        try:
            self.command_queue.put_nowait(command)
            return True
        except queue.Full:
            logger.warning(f"Loader queue full, dropping command: {command}")
            return False

    def wait_idle(self):
        """Block until every queued command has been processed."""
        if self.is_alive():
            self.command_queue.join()

    def run(self):
        """Main worker loop - processes load commands from queue."""
        logger.info("LoaderWorker started")

        while not self.stop_event.is_set():
            try:
                # Wait for command with timeout to allow checking stop_event
                command = self.command_queue.get(timeout=LoaderConfig.QUEUE_GET_TIMEOUT)
            except queue.Empty:
                continue

            try:
                self._execute_command(command)
            except Exception as e:
                logger.error(f"Error processing load command {command}: {e}", exc_info=True)
            finally:
                self.command_queue.task_done()

        # Release anyone blocked in wait_idle()
        self.clear_queue()
        logger.info("LoaderWorker stopped")

    def _execute_command(self, command):
        """
        Execute a single load command.

        Args:
            command (LoadCommand): Command to execute
        """
        if command.cancelled:
            logger.debug(f"Skipping cancelled {command}")
            return

        if command.command_type == LoadCommand.LOOP:
            try:
                handle = self._backend().start_loop(command.path, command.volume)
            except Exception as e:
                # Always answer a loop so the owner can clear its pending entry
                self.result_queue.put(LoadResult(command, error=e))
                return

            if command.cancelled:
                handle.stop()
                logger.debug(f"Stopped loop cancelled while loading: {command}")
                return

            self.result_queue.put(LoadResult(command, handle=handle))
            # The owner may have cancelled and stopped draining after the check above
            if command.cancelled:
                handle.stop()

        elif command.command_type == LoadCommand.ONE_SHOT:
            try:
                self._backend().play_once(command.path, command.volume)
                logger.info(f"Playing one-shot: {command.path}")
            except AudioLoadError as e:
                logger.error(f"Error playing one-shot {command.path}: {e}")

        else:
            logger.warning(f"Unknown load command type: {command.command_type}")

    def _backend(self):
        if self.backend is None:
            raise AudioLoadError("No audio backend available")
        return self.backend

    def clear_queue(self):
        """Drop all pending commands."""
        while True:
            try:
                self.command_queue.get_nowait()
            except queue.Empty:
                break
            self.command_queue.task_done()

    def stop(self):
        """Signal the worker to stop."""
        logger.info("Stopping LoaderWorker...")
        self.stop_event.set()
