import logging
import typing

import mido


logger = logging.getLogger(__name__)


def list_output_devices () -> typing.List[str]:

	"""Return the names of the available MIDI outputs, or an empty list on failure."""

	try:
		return list(mido.get_output_names())

	except Exception as e:
		logger.error(f"Failed to list MIDI outputs: {e}")
		return []


def select_output_device (device_name: typing.Optional[str] = None) -> typing.Tuple[typing.Optional[str], typing.Optional[typing.Any]]:

	"""
	Select and open a MIDI output device.

	If `device_name` is given, that device is opened. A name that is not an
	exact match falls back to the first output whose name contains it
	(case-insensitive), so ``"fluid"`` finds ``"FLUID Synth (1234):0"``.

	If `device_name` is None, the first available output is used. A
	generative engine runs unattended, so there is no interactive prompt.

	Returns:
		A tuple of (device_name, midi_out_object) or (None, None) on failure.
	"""

	outputs = list_output_devices()
	logger.info(f"Available MIDI outputs: {outputs}")

	if not outputs:
		logger.error("No MIDI output devices found.")
		return None, None

	selected: typing.Optional[str] = None

	if device_name is None:
		selected = outputs[0]

	elif device_name in outputs:
		selected = device_name

	else:
		matches = [name for name in outputs if device_name.lower() in name.lower()]

		if matches:
			selected = matches[0]
			logger.warning(f"MIDI output '{device_name}' not found exactly - using '{selected}'")

	if selected is None:
		logger.error(
			f"MIDI output device '{device_name}' not found. "
			f"Available devices: {outputs}"
		)
		return None, None

	try:
		midi_out = mido.open_output(selected)

	except Exception as e:
		logger.error(f"Failed to open MIDI output: {e}")
		return None, None

	logger.info(f"Opened MIDI output: {selected}")

	return selected, midi_out
