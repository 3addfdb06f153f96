"""Callbacks fired by contexts around saves, removes, fetches and conversion.

Event callbacks receive the object and their return value is ignored.
Transform callbacks receive a value and return the value handed to the next
callback; the last result is what the context continues with.

Example:
    context.register_callback("before_save", lambda obj: obj.touch())
    context.register_callback("before_convert_to_data", strip_cache_fields)
"""

from typing import Any, Callable, Dict, List, Optional

Callback = Callable[[Any], Any]

EVENTS = frozenset(
    {
        "before_save",
        "after_save",
        "before_remove",
        "after_remove",
        "after_fetch",
        "after_convert_to_data",
        "after_convert_to_object",
    }
)

TRANSFORMS = frozenset({"before_convert_to_data", "before_convert_to_object"})


class Callbacks:
    """Ordered callback lists, one per event name."""

    def __init__(self):
        self._callbacks: Dict[str, List[Callback]] = {}

    def _check(self, event: str) -> str:
        if event not in EVENTS and event not in TRANSFORMS:
            raise ValueError(f"Unknown callback event: {event!r}")
        return event

    def callbacks(self, event: str) -> List[Callback]:
        """The list of callbacks for an event.

        The same list is returned on every call, so it may be inspected or
        edited directly.
        """
        return self._callbacks.setdefault(self._check(event), [])

    def register(self, event: str, callback: Optional[Callback] = None) -> Any:
        """Append a callback for an event and return it.

        Without a callback, returns a decorator that registers the function
        it decorates.
        """
        callbacks = self.callbacks(event)
        if callback is None:

            def decorator(func: Callback) -> Callback:
                callbacks.append(func)
                return func

            return decorator
        callbacks.append(callback)
        return callback

    def clear(self, event: Optional[str] = None) -> None:
        """Remove the callbacks for one event, or for all events."""
        if event is None:
            for callbacks in self._callbacks.values():
                callbacks.clear()
        else:
            self.callbacks(event).clear()

    def fire(self, event: str, obj: Any) -> None:
        """Call each event callback with obj."""
        for callback in list(self.callbacks(event)):
            callback(obj)

    def transform(self, event: str, value: Any) -> Any:
        """Pass value through each transform callback in order."""
        for callback in list(self.callbacks(event)):
            value = callback(value)
        return value
