"""Configuration models and helpers for TimeWise."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping, Optional

DEFAULT_MODEL = "gemini-2.5-flash"


@dataclass(slots=True)
class StoreSettings:
    """Runtime configuration for loading and saving the collections."""

    load_timeout: timedelta = timedelta(seconds=5)

    @classmethod
    def from_seconds(cls, load_timeout_seconds: float) -> "StoreSettings":
        return cls(load_timeout=timedelta(seconds=load_timeout_seconds))


@dataclass(slots=True)
class CoachSettings:
    """Connection settings for the Gemini coaching endpoint."""

    api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    request_timeout: timedelta = timedelta(seconds=30)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CoachSettings":
        env = os.environ if environ is None else environ
        api_key = env.get("GEMINI_API_KEY") or env.get("API_KEY") or None
        model = env.get("TIMEWISE_COACH_MODEL") or DEFAULT_MODEL
        return cls(api_key=api_key, model=model)
