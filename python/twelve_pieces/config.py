"""Runtime configuration.

Defaults can be overridden through ``TWELVE_PIECES_*`` environment variables;
command-line flags of each entry point take precedence over both.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .ai import DEFAULT_DEPTH, Evaluation
from .game.promotion import DEFAULT_POLICY, PromotionPolicy
from .game.rules import GameRules


ENV_PREFIX = "TWELVE_PIECES_"


def _env(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(ENV_PREFIX + name, "").strip()
    return value or None


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = _env(environ, name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 11111
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        env = os.environ if environ is None else environ
        return cls(
            host=_env(env, "HOST") or cls.host,
            port=_env_int(env, "PORT", cls.port),
            log_level=(_env(env, "LOG_LEVEL") or cls.log_level).upper(),
        )


@dataclass(frozen=True)
class EngineConfig:
    depth: int = DEFAULT_DEPTH
    promotion: PromotionPolicy = DEFAULT_POLICY
    evaluation: Evaluation = Evaluation.MATERIAL_ADVANCEMENT
    draw_on_lone_pieces: bool = True

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        env = os.environ if environ is None else environ
        promotion = _env(env, "PROMOTION")
        evaluation = _env(env, "EVALUATION")
        draw = _env(env, "DRAW_ON_LONE_PIECES")
        return cls(
            depth=max(1, _env_int(env, "DEPTH", cls.depth)),
            promotion=PromotionPolicy(promotion) if promotion else cls.promotion,
            evaluation=Evaluation(evaluation) if evaluation else cls.evaluation,
            draw_on_lone_pieces=cls.draw_on_lone_pieces if draw is None else draw.lower() in {"1", "true", "yes"},
        )

    @property
    def rules(self) -> GameRules:
        return GameRules(promotion=self.promotion, draw_on_lone_pieces=self.draw_on_lone_pieces)


__all__ = ["ENV_PREFIX", "EngineConfig", "ServerConfig"]
