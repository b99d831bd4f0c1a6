import inspect
import typing


CallbackType = typing.Callable[..., typing.Any]

ANY_EVENT = "*"


class EventEmitter:

	"""
	A simple synchronous event emitter.

	Listeners registered under ``ANY_EVENT`` receive every event, after the
	listeners registered for that event's name.
	"""

	def __init__ (self) -> None:

		"""
		Initialize an empty event registry.
		"""

		self._listeners: typing.Dict[str, typing.List[CallbackType]] = {}


	def on (self, event_name: str, callback: CallbackType) -> None:

		"""
		Register a callback for an event name (or ``ANY_EVENT``).
		"""

		if inspect.iscoroutinefunction(callback):
			raise ValueError(f"Async callback registered for event {event_name!r}; listeners must be synchronous")

		if event_name not in self._listeners:
			self._listeners[event_name] = []

		self._listeners[event_name].append(callback)

	def off (self, event_name: str, callback: CallbackType) -> None:

		"""
		Unregister a previously registered callback.

		Raises ``ValueError`` if the callback is not registered for the event.
		"""

		if event_name not in self._listeners or callback not in self._listeners[event_name]:
			raise ValueError(f"Callback not registered for event {event_name!r}")

		self._listeners[event_name].remove(callback)


	def emit (self, event_name: str, *args: typing.Any, **kwargs: typing.Any) -> None:

		"""
		Call the listeners for *event_name*, then the ``ANY_EVENT`` listeners.
		"""

		callbacks = list(self._listeners.get(event_name, []))

		if event_name != ANY_EVENT:
			callbacks.extend(self._listeners.get(ANY_EVENT, []))

		for callback in callbacks:
			callback(*args, **kwargs)
