import pytest

from twelve_pieces.ai import DEFAULT_DEPTH, Evaluation
from twelve_pieces.config import EngineConfig, ServerConfig
from twelve_pieces.game.promotion import PromotionPolicy


def test_server_defaults() -> None:
    config = ServerConfig.from_env({})

    assert config == ServerConfig(host="127.0.0.1", port=11111, log_level="INFO")


def test_server_from_environment() -> None:
    config = ServerConfig.from_env(
        {
            "TWELVE_PIECES_HOST": "0.0.0.0",
            "TWELVE_PIECES_PORT": "9000",
            "TWELVE_PIECES_LOG_LEVEL": "debug",
        }
    )

    assert config.host == "0.0.0.0"
    assert config.port == 9000
    assert config.log_level == "DEBUG"


def test_invalid_port_is_reported() -> None:
    with pytest.raises(ValueError, match="TWELVE_PIECES_PORT"):
        ServerConfig.from_env({"TWELVE_PIECES_PORT": "eleven"})


def test_engine_defaults() -> None:
    config = EngineConfig.from_env({})

    assert config.depth == DEFAULT_DEPTH
    assert config.promotion is PromotionPolicy.COMPENSATION
    assert config.evaluation is Evaluation.MATERIAL_ADVANCEMENT
    assert config.rules.draw_on_lone_pieces


def test_engine_from_environment() -> None:
    config = EngineConfig.from_env(
        {
            "TWELVE_PIECES_DEPTH": "0",
            "TWELVE_PIECES_PROMOTION": "last-row",
            "TWELVE_PIECES_EVALUATION": "material-mobility",
            "TWELVE_PIECES_DRAW_ON_LONE_PIECES": "no",
        }
    )

    assert config.depth == 1
    assert config.rules.promotion is PromotionPolicy.LAST_ROW
    assert config.evaluation is Evaluation.MATERIAL_MOBILITY
    assert not config.rules.draw_on_lone_pieces


def test_unknown_policy_is_rejected() -> None:
    with pytest.raises(ValueError):
        EngineConfig.from_env({"TWELVE_PIECES_PROMOTION": "whenever"})
