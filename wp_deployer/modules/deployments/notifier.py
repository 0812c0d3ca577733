"""
Push-based relay of orchestration narration to attached listeners.

Events published on a channel (a job id, or a one-off validation channel) are
copied to every subscription currently attached to that channel. Nothing is
buffered for absent listeners: only the job record is durable.
"""
import json
import queue
import threading
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from wp_deployer.core.exceptions import DeployerError

logger = logging.getLogger(__name__)

EVENT_TYPES = ("start", "info", "log", "success", "error")


class Subscription:
    def __init__(self, notifier: "ProgressNotifier", channel: str):
        self.notifier = notifier
        self.channel = channel
        self.queue: queue.Queue = queue.Queue()

    def close(self) -> None:
        self.notifier.unsubscribe(self)


class ProgressNotifier:
    def __init__(self):
        self._lock = threading.Lock()
        self._channels: Dict[str, List[Subscription]] = {}

    def subscribe(self, channel: str) -> Subscription:
        subscription = Subscription(self, channel)
        with self._lock:
            self._channels.setdefault(channel, []).append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            listeners = self._channels.get(subscription.channel, [])
            if subscription in listeners:
                listeners.remove(subscription)
            if not listeners:
                self._channels.pop(subscription.channel, None)

    def listener_count(self, channel: str) -> int:
        with self._lock:
            return len(self._channels.get(channel, []))

    def publish(self, channel: str, event_type: str, message: str, final: bool = False, **extra: Any) -> None:
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {event_type}")
        event = {
            "type": event_type,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **extra,
        }
        with self._lock:
            listeners = list(self._channels.get(channel, []))
        for subscription in listeners:
            subscription.queue.put((event, final))


class ProgressLog:
    """
    Per-run narration sink passed explicitly into the orchestrator and the
    hosting connector. Lines go to the module logger and the notifier channel.
    Calling the instance directly emits a plain `log` line, so it can be handed
    to anything expecting a `log_callback(message)`.
    """

    def __init__(self, channel: str, notifier: Optional[ProgressNotifier] = None, log: Optional[logging.Logger] = None):
        self.channel = channel
        self.notifier = notifier
        self.logger = log or logger

    def emit(self, event_type: str, message: str, **extra: Any) -> None:
        level = logging.ERROR if event_type == "error" else logging.INFO
        self.logger.log(level, f"[{self.channel}] {message}")
        if self.notifier is not None:
            self.notifier.publish(self.channel, event_type, message, **extra)

    def __call__(self, message: str) -> None:
        self.emit("log", message)

    def start(self, message: str) -> None:
        self.emit("start", message)

    def info(self, message: str) -> None:
        self.emit("info", message)

    def success(self, message: str) -> None:
        self.emit("success", message)

    def error(self, message: str) -> None:
        self.emit("error", message)


def format_sse(event: Dict[str, Any]) -> str:
    return f"data: {json.dumps(event, default=str)}\n\n"


def iter_sse(subscription: Subscription, poll_seconds: float = 15.0) -> Iterator[str]:
    """Yield SSE frames until the final event arrives, then detach."""
    try:
        while True:
            try:
                event, final = subscription.queue.get(timeout=poll_seconds)
            except queue.Empty:
                yield ": keep-alive\n\n"
                continue
            yield format_sse(event)
            if final:
                break
    finally:
        subscription.close()


def stream_run(
    notifier: ProgressNotifier,
    channel: str,
    work: Callable[[], Tuple[str, str, Dict[str, Any]]],
    poll_seconds: float = 15.0,
) -> Iterator[str]:
    """
    Run work on a worker thread and relay the channel as SSE frames.

    work returns (event_type, message, extra) for the final event. The
    subscription is attached before the thread starts so no event is missed;
    a disconnecting caller only detaches, the run keeps going.
    """
    subscription = notifier.subscribe(channel)

    def runner() -> None:
        try:
            event_type, message, extra = work()
        except DeployerError as e:
            notifier.publish(channel, "error", e.message, final=True, error=e.message, details=e.details)
        except Exception as e:
            logger.exception(f"Unhandled error in streamed run {channel}")
            notifier.publish(channel, "error", "Unexpected error", final=True, error=str(e))
        else:
            notifier.publish(channel, event_type, message, final=True, **extra)

    threading.Thread(target=runner, name=f"run-{channel}", daemon=True).start()
    return iter_sse(subscription, poll_seconds)


notifier = ProgressNotifier()
