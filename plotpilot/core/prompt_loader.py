from functools import lru_cache
from pathlib import Path
from string import Template

PROMPT_DIR = Path(__file__).parent.parent / "prompts"


@lru_cache(maxsize=None)
def _read_template(path: Path) -> Template:
    return Template(path.read_text(encoding="utf-8"))


def load_prompt(name: str, *, version: str = "v1", **kwargs) -> str:
    """
    Render prompts/<name>/<version>.txt with `string.Template` substitution.

    Prompt files are read once per process; `$` placeholders avoid brace
    escaping in text that may contain JSON examples.
    """
    prompt_path = PROMPT_DIR / name / f"{version}.txt"
    if not prompt_path.exists():
        raise FileNotFoundError(f"No prompt '{name}' version '{version}' under {PROMPT_DIR}")

    try:
        return _read_template(prompt_path).substitute(**kwargs)
    except KeyError as e:
        raise RuntimeError(
            f"Prompt substitution failed for '{name}'. Missing variable: {e}"
        ) from e
