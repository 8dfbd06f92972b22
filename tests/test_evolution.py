import pytest

import perpetua.evolution


Stage = perpetua.evolution.EvolutionStage
Source = perpetua.evolution.PatternSource


def test_starts_in_intro () -> None:

	evolution = perpetua.evolution.EvolutionStateMachine()

	assert evolution.stage is Stage.INTRO
	assert evolution.stage.label == "Intro"
	assert evolution.phrases_per_stage == 4


def test_advance_cycles_through_all_stages () -> None:

	"""Intro → Development → Climax → Resolution → Intro, with no terminal stage."""

	evolution = perpetua.evolution.EvolutionStateMachine()

	assert [evolution.advance() for _ in range(5)] == [
		Stage.DEVELOPMENT,
		Stage.CLIMAX,
		Stage.RESOLUTION,
		Stage.INTRO,
		Stage.DEVELOPMENT,
	]
	assert evolution.cycles == 1


def test_labels () -> None:

	assert [stage.label for stage in Stage] == ["Intro", "Development", "Climax", "Resolution"]


def test_melody_regenerates_in_development_and_climax () -> None:

	evolution = perpetua.evolution.EvolutionStateMachine()
	flags = []

	for _ in range(4):
		evolution.advance()
		flags.append((evolution.stage, evolution.regenerates_melody()))

	assert flags == [
		(Stage.DEVELOPMENT, True),
		(Stage.CLIMAX, True),
		(Stage.RESOLUTION, False),
		(Stage.INTRO, False),
	]


def test_pattern_source_by_stage () -> None:

	"""Intro and Climax play main, Development alternates, Resolution plays the hook."""

	evolution = perpetua.evolution.EvolutionStateMachine()
	sources = {}

	for stage in Stage:
		sources[stage] = [evolution.pattern_source(bar) for bar in range(4)]
		evolution.advance()

	assert sources[Stage.INTRO] == [Source.MAIN] * 4
	assert sources[Stage.DEVELOPMENT] == [Source.MAIN, Source.HOOK, Source.MAIN, Source.HOOK]
	assert sources[Stage.CLIMAX] == [Source.MAIN] * 4
	assert sources[Stage.RESOLUTION] == [Source.HOOK] * 4


def test_note_duration_and_dynamics () -> None:

	"""Climax is shorter and loudest, Resolution longer and softest."""

	evolution = perpetua.evolution.EvolutionStateMachine()
	table = {}

	for stage in Stage:
		table[stage] = (evolution.note_duration(0.2), evolution.note_duration(0.8), evolution.dynamic_level)
		evolution.advance()

	assert table[Stage.INTRO] == (0.25, 0.5, 0.85)
	assert table[Stage.DEVELOPMENT] == (0.25, 0.5, 0.95)
	assert table[Stage.CLIMAX] == (0.25, 0.125, 1.0)
	assert table[Stage.RESOLUTION] == (0.5, 0.25, 0.8)


def test_reset_returns_to_intro () -> None:

	evolution = perpetua.evolution.EvolutionStateMachine()
	evolution.advance()
	evolution.advance()

	evolution.reset()

	assert evolution.stage is Stage.INTRO
	assert evolution.cycles == 0


def test_invalid_phrase_count () -> None:

	with pytest.raises(ValueError):
		perpetua.evolution.EvolutionStateMachine(phrases_per_stage=0)
