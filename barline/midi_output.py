import logging
import typing

import mido

import barline.constants.velocity
import barline.event_emitter
import barline.music
import barline.transport


logger = logging.getLogger(__name__)


def select_output_device (device_name: typing.Optional[str] = None) -> typing.Tuple[typing.Optional[str], typing.Optional[typing.Any]]:

	"""
	Select and open a MIDI output device.

	If `device_name` is provided, attempts to open that specific device.
	If `device_name` is None and exactly one device exists, that device is used.
	With several devices and no name, nothing is opened - the caller should
	pass one of the names logged here.

	Returns:
		A tuple of (device_name, midi_out_object) or (None, None) on failure.
	"""

	try:
		outputs = mido.get_output_names()
		logger.info(f"Available MIDI outputs: {outputs}")

		if not outputs:
			logger.error("No MIDI output devices found.")
			return None, None

		if device_name is not None:

			if device_name not in outputs:
				logger.error(f"MIDI output device '{device_name}' not found. Available devices: {outputs}")
				return None, None

			midi_out = mido.open_output(device_name)
			logger.info(f"Opened MIDI output: {device_name}")
			return device_name, midi_out

		if len(outputs) == 1:
			midi_out = mido.open_output(outputs[0])
			logger.info(f"One MIDI output found - using '{outputs[0]}'")
			return outputs[0], midi_out

		logger.error(f"Several MIDI outputs found - choose one with device_name: {outputs}")
		return None, None

	except Exception as e:
		logger.error(f"Failed to open MIDI output: {e}")
		return None, None


class MidiOutputListener:

	"""
	Plays transport events on a MIDI output.

	``noteStart``/``noteEnd`` become note on/off, pedal events become CC 64,
	and ``sequenceEnd`` releases anything still sounding.  Notes outside
	the 88 piano keys (A0 to C8) are skipped with a warning.

	Example:
		```python
		_, midi_out = select_output_device("My Synth")
		listener = MidiOutputListener(midi_out, channel=0)
		listener.attach(transport)
		```
	"""

	def __init__ (
		self,
		midi_out: typing.Optional[typing.Any] = None,
		channel: int = 0,
		velocity: int = barline.constants.velocity.DEFAULT_VELOCITY
	) -> None:

		"""
		Parameters:
			midi_out: An open mido output port (or anything with ``send``).
				When None, messages are built but not sent.
			channel: MIDI channel 0-15.
			velocity: Note on velocity 1-127.
		"""

		if not 0 <= channel <= 15:
			raise ValueError("MIDI channel must be 0-15")

		if not barline.constants.velocity.MIN_VELOCITY < velocity <= barline.constants.velocity.MAX_VELOCITY:
			raise ValueError("Velocity must be 1-127")

		self.midi_out = midi_out
		self.channel = channel
		self.velocity = velocity
		self.sounding: typing.Dict[int, int] = {}


	def attach (self, transport: barline.transport.Transport) -> None:

		"""Listen to every event of *transport*."""

		transport.on_event(barline.event_emitter.ANY_EVENT, self)


	def __call__ (self, event: barline.transport.SequencerEvent) -> None:

		for message in self.messages_for(event):
			self._send(message)


	def messages_for (self, event: barline.transport.SequencerEvent) -> typing.List[mido.Message]:

		"""
		Translate one transport event into MIDI messages, tracking sounding notes.
		"""

		if event.type == barline.transport.NOTE_START and event.action is not None and event.action.note is not None:

			if not barline.music.is_piano_note(event.action.note.pitch):
				logger.warning(f"{event.action.note.pitch} is outside the 88-key range, not sent")
				return []

			note = barline.music.note_to_midi(event.action.note.pitch)
			self.sounding[note] = self.sounding.get(note, 0) + 1

			return [mido.Message('note_on', channel=self.channel, note=note, velocity=self.velocity)]

		if event.type == barline.transport.NOTE_END and event.action is not None and event.action.note is not None:

			note = barline.music.note_to_midi(event.action.note.pitch)

			if note not in self.sounding:
				return []

			self.sounding[note] -= 1

			if self.sounding[note] <= 0:
				del self.sounding[note]

			return [mido.Message('note_off', channel=self.channel, note=note, velocity=0)]

		if event.type == barline.transport.SUSTAIN_PEDAL_DOWN:
			return [self._pedal_message(barline.constants.velocity.SUSTAIN_PEDAL_ON)]

		if event.type == barline.transport.SUSTAIN_PEDAL_UP:
			return [self._pedal_message(barline.constants.velocity.SUSTAIN_PEDAL_OFF)]

		if event.type == barline.transport.SEQUENCE_END:

			messages = [mido.Message('note_off', channel=self.channel, note=note, velocity=0) for note in sorted(self.sounding)]
			messages.append(self._pedal_message(barline.constants.velocity.SUSTAIN_PEDAL_OFF))
			self.sounding.clear()

			return messages

		return []


	def _pedal_message (self, value: int) -> mido.Message:

		return mido.Message(
			'control_change',
			channel = self.channel,
			control = barline.constants.velocity.SUSTAIN_PEDAL_CONTROL,
			value = value
		)


	def _send (self, message: mido.Message) -> None:

		if self.midi_out is None:
			return

		try:
			self.midi_out.send(message)
		except Exception:
			logger.exception("MIDI send failed (device may be disconnected)")
