import argparse
import asyncio
import logging
import os
import typing

import yaml

import barline.constants.timing
import barline.constants.velocity
import barline.midi_output
import barline.render
import barline.timers
import barline.transport


# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def load_config (config_path: str = 'config.yaml') -> dict:

	"""
	Load configuration from a YAML file.

	Recognised keys::

		sequencer:
		  initial_bpm: 120
		  frame_rate: 10
		midi:
		  device_name: "My Synth"
		  channel: 0
		  velocity: 100
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return {}

	with open(config_path, 'r') as f:
		return yaml.safe_load(f) or {}


def build_parser () -> argparse.ArgumentParser:

	"""Command line options."""

	parser = argparse.ArgumentParser(prog="barline", description="Play or render bar notation over MIDI")
	parser.add_argument("notation", nargs="?", default=None, help="Notation string, e.g. \"bpm=100 | C4 E4 G4 C5\"")
	parser.add_argument("--file", dest="notation_file", default=None, help="Read the notation from this file")
	parser.add_argument("--config", default="config.yaml", help="YAML config file (defaults applied if missing)")
	parser.add_argument("--render", dest="render_path", default=None, help="Write a MIDI file instead of playing live")
	parser.add_argument("--device", default=None, help="MIDI output device name (overrides the config)")

	return parser


def read_notation (args: argparse.Namespace) -> typing.Optional[str]:

	"""Notation from the positional argument or ``--file``."""

	if args.notation_file is not None:
		with open(args.notation_file, 'r') as f:
			return f.read()

	return args.notation


async def play_live (notation: str, config: dict, device_name: typing.Optional[str]) -> None:

	"""
	Play *notation* on a MIDI output until the sequence ends.
	"""

	sequencer_config = config.get('sequencer', {})
	midi_config = config.get('midi', {})

	_, midi_out = barline.midi_output.select_output_device(device_name or midi_config.get('device_name'))

	if midi_out is None:
		logger.error("No MIDI output - nothing to play on.")
		return

	transport = barline.transport.Transport(
		timer = barline.timers.AsyncioTimer(),
		initial_bpm = sequencer_config.get('initial_bpm', barline.constants.timing.DEFAULT_BPM),
		frame_rate = sequencer_config.get('frame_rate', barline.constants.timing.FRAME_RATE)
	)

	listener = barline.midi_output.MidiOutputListener(
		midi_out,
		channel = midi_config.get('channel', 0),
		velocity = midi_config.get('velocity', barline.constants.velocity.DEFAULT_VELOCITY)
	)

	listener.attach(transport)
	transport.init_sequence_with_notation(notation)

	try:
		await transport.play()
	finally:
		transport.stop_sequence()
		midi_out.close()


def main (argv: typing.Optional[typing.List[str]] = None) -> int:

	"""
	Main entry point for the barline command.
	"""

	args = build_parser().parse_args(argv)
	notation = read_notation(args)

	if not notation:
		logger.error("No notation given (pass a string or --file).")
		return 1

	config = load_config(args.config)

	if args.render_path is not None:
		midi_config = config.get('midi', {})
		barline.render.render_to_midi(
			notation,
			filename = args.render_path,
			channel = midi_config.get('channel', 0),
			velocity = midi_config.get('velocity', barline.constants.velocity.DEFAULT_VELOCITY),
			initial_bpm = config.get('sequencer', {}).get('initial_bpm', barline.constants.timing.DEFAULT_BPM)
		)
		return 0

	try:
		asyncio.run(play_live(notation, config, args.device))
	except KeyboardInterrupt:
		logger.info("Stopping...")

	return 0


if __name__ == "__main__":
	raise SystemExit(main())
