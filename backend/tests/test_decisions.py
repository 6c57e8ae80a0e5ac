"""
Tests for council/decisions.py — decision ladder and observations.
"""

import os
import sys
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from council.config import EngineConfig
from council.decisions import (
    CONGRATULATIONS,
    ENCOURAGEMENT,
    EXCELLENCE,
    HONOR_BOARD,
    NO_DISTINCTION,
    WARNING,
    classify,
    default_observation,
    get_decision_ladder,
    is_honor,
)

THRESHOLDS = {"honor": 12, "encouragement": 14, "congratulations": 16, "excellence": 18}


class TestClassify:

    @pytest.mark.parametrize("average,expected", [
        (20.0, EXCELLENCE),
        (18.0, EXCELLENCE),
        (17.99, CONGRATULATIONS),
        (16.0, CONGRATULATIONS),
        (14.5, ENCOURAGEMENT),
        (13.99, HONOR_BOARD),
        (12.0, HONOR_BOARD),
        (11.0, NO_DISTINCTION),
        (10.0, NO_DISTINCTION),
        (9.99, WARNING),
        (9.0, WARNING),
        (0.0, WARNING),
    ])
    def test_ladder(self, average, expected):
        assert classify(average, THRESHOLDS) == expected

    def test_uses_engine_config_thresholds(self):
        config = EngineConfig(honor=11, encouragement=13, congratulations=15, excellence=17)
        assert classify(11.5, config.thresholds()) == HONOR_BOARD
        assert classify(17.0, config.thresholds()) == EXCELLENCE

    def test_pass_line_is_fixed(self):
        # Lowering honor below 10 still leaves averages under 10 as honor
        thresholds = dict(THRESHOLDS, honor=8)
        assert classify(9.0, thresholds) == HONOR_BOARD
        assert classify(7.9, thresholds) == WARNING

    def test_misordered_thresholds_do_not_raise(self):
        thresholds = {"honor": 18, "encouragement": 14, "congratulations": 12, "excellence": 16}
        assert classify(13.0, thresholds) == CONGRATULATIONS

    def test_is_honor(self):
        assert is_honor(HONOR_BOARD)
        assert not is_honor(NO_DISTINCTION)
        assert not is_honor(WARNING)


class TestLadderAndObservations:

    def test_ladder_covers_every_label(self):
        ladder = get_decision_ladder(THRESHOLDS)
        labels = [rung["label"] for rung in ladder]
        assert labels == [EXCELLENCE, CONGRATULATIONS, ENCOURAGEMENT, HONOR_BOARD, NO_DISTINCTION, WARNING]
        assert ladder[0]["max"] == 20.0
        assert ladder[1]["max"] == 17.99
        assert ladder[-1]["min"] == 0.0

    def test_default_observation_bands(self):
        assert default_observation(19) == "Excellent results, keep it up."
        assert default_observation(10) == "Average results, more effort is needed."
        assert default_observation(8.5) == "Weak results, must catch up."
        assert default_observation(3) == "Insufficient results, warning."
