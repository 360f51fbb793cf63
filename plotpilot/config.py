from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os


@dataclass(frozen=True)
class Settings:
    # LLM backend
    openai_api_key: str | None
    model: str
    temperature: float
    llm_timeout: float
    llm_max_attempts: int
    llm_backoff_seconds: float

    # Orchestration
    max_steps: int
    prompt_version: str

    # Domain store
    store_backend: str  # "memory" or "sqlite"
    store_timeout: float
    db_path: Path
    seed_demo_data: bool

    @property
    def llm_step_deadline(self) -> float:
        """
        Upper bound for one model step, retries included.

        Every attempt may use `llm_timeout`, and backoff doubles between attempts.
        """
        backoff = sum(self.llm_backoff_seconds * (2 ** (i - 1)) for i in range(1, self.llm_max_attempts))
        return self.llm_timeout * self.llm_max_attempts + backoff


def _float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else default


def _int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else default


def load_settings() -> Settings:
    root = Path(os.getenv("PLOTPILOT_ROOT", str(Path.cwd())))

    # LLM backend
    openai_api_key = os.getenv("OPENAI_API_KEY", "").strip() or None
    model = os.getenv("PLOTPILOT_MODEL", "gpt-4o-mini").strip() or "gpt-4o-mini"
    temperature = _float("PLOTPILOT_TEMPERATURE", 0.2)
    llm_timeout = _float("PLOTPILOT_LLM_TIMEOUT", 30.0)
    llm_max_attempts = max(1, _int("PLOTPILOT_LLM_MAX_ATTEMPTS", 3))
    llm_backoff_seconds = _float("PLOTPILOT_LLM_BACKOFF", 1.0)

    # Orchestration
    max_steps = max(1, _int("PLOTPILOT_MAX_STEPS", 4))
    prompt_version = os.getenv("PLOTPILOT_PROMPT_VERSION", "v1").strip() or "v1"

    # Domain store
    store_backend = os.getenv("PLOTPILOT_STORE", "memory").strip().lower() or "memory"
    store_timeout = _float("PLOTPILOT_STORE_TIMEOUT", 5.0)
    db_path = Path(os.getenv("PLOTPILOT_DB_PATH", str(root / "data" / "plotpilot.sqlite3")))
    seed_demo_data = os.getenv("PLOTPILOT_SEED_DEMO", "1").strip() == "1"

    if store_backend not in ("memory", "sqlite"):
        raise RuntimeError(f"PLOTPILOT_STORE must be 'memory' or 'sqlite' (got {store_backend!r})")

    return Settings(
        openai_api_key=openai_api_key,
        model=model,
        temperature=temperature,
        llm_timeout=llm_timeout,
        llm_max_attempts=llm_max_attempts,
        llm_backoff_seconds=llm_backoff_seconds,

        max_steps=max_steps,
        prompt_version=prompt_version,

        store_backend=store_backend,
        store_timeout=store_timeout,
        db_path=db_path,
        seed_demo_data=seed_demo_data,
    )
