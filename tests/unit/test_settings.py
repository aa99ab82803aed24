import pytest
from pydantic import ValidationError

from activity_slides.core.settings import Settings


def test_defaults_match_host_admission_limits() -> None:
    config = Settings.model_validate({})

    assert config.INSERTION_DELAY_SECONDS == 4.0
    assert config.INSERTION_PACING_MODE == "fixed"
    assert (config.INSERTION_WINDOW_MAX_CALLS, config.INSERTION_WINDOW_SECONDS) == (3, 10.0)
    assert config.GENERATION_CONNECTED_PROGRESS == 25
    assert config.LINK_VALID_ALERT_SECONDS == 3.0


def test_values_are_normalized() -> None:
    config = Settings.model_validate(
        {
            "ACTIVITY_API_URL": " https://api.example.org/ ",
            "INSERTION_PACING_MODE": " Window ",
            "LOG_LEVEL": "debug",
        }
    )

    assert config.ACTIVITY_API_URL == "https://api.example.org"
    assert config.INSERTION_PACING_MODE == "window"
    assert config.LOG_LEVEL == "DEBUG"


def test_invalid_pacing_values_fall_back_to_defaults() -> None:
    config = Settings.model_validate(
        {
            "INSERTION_DELAY_SECONDS": -1,
            "INSERTION_WINDOW_MAX_CALLS": 0,
            "INSERTION_WINDOW_SECONDS": 10,
            "GENERATION_CONNECTED_PROGRESS": 140,
        }
    )

    assert config.INSERTION_DELAY_SECONDS == 4.0
    assert config.INSERTION_WINDOW_MAX_CALLS == 3
    assert config.INSERTION_WINDOW_SECONDS == 10.0
    assert config.GENERATION_CONNECTED_PROGRESS == 100


def test_unknown_pacing_mode_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings.model_validate({"INSERTION_PACING_MODE": "burst"})
