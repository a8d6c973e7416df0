from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
import json
from pathlib import Path
import tempfile

from .errors import SettingsError

CONFIG_DIR = Path.home() / ".locatorsynth"
SETTINGS_PATH = CONFIG_DIR / "settings.json"

DEFAULT_STABLE_WORDS = (
    "button",
    "input",
    "select",
    "modal",
    "dialog",
    "header",
    "footer",
    "submit",
    "cancel",
    "save",
    "close",
)


@dataclass(slots=True)
class SynthesisSettings:
    fast_max_depth: int = 10
    fast_candidate_limit: int = 5
    deep_max_depth: int = 30
    deep_candidate_limit: int = 15
    self_text_max_length: int = 50
    segment_text_max_length: int = 35
    padded_text_max_length: int = 60
    ancestor_text_levels: int = 3
    semantic_child_limit: int = 50
    parent_context_attempts: int = 5
    snapshot_limit: int = 3000
    aggressive_digits: bool = True
    stable_words: tuple[str, ...] = field(default=DEFAULT_STABLE_WORDS)

    def validate(self) -> None:
        for name in (
            "fast_max_depth",
            "fast_candidate_limit",
            "deep_max_depth",
            "deep_candidate_limit",
            "parent_context_attempts",
        ):
            if int(getattr(self, name)) <= 0:
                raise SettingsError(f"{name} must be a positive integer.")
        if self.deep_max_depth < self.fast_max_depth:
            raise SettingsError("deep_max_depth must not be smaller than fast_max_depth.")
        if self.deep_candidate_limit < self.fast_candidate_limit:
            raise SettingsError("deep_candidate_limit must not be smaller than fast_candidate_limit.")


def load_settings(config_path: Path | None = None) -> SynthesisSettings:
    path = config_path or SETTINGS_PATH
    if not path.exists() or not path.is_file():
        return SynthesisSettings()

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, TypeError):
        return SynthesisSettings()

    if not isinstance(payload, dict):
        return SynthesisSettings()

    defaults = SynthesisSettings()
    values: dict[str, object] = {}
    for item in fields(SynthesisSettings):
        if item.name not in payload:
            continue
        raw = payload[item.name]
        current = getattr(defaults, item.name)
        if isinstance(current, bool):
            if isinstance(raw, bool):
                values[item.name] = raw
        elif isinstance(current, int):
            try:
                values[item.name] = int(raw)
            except (TypeError, ValueError):
                continue
        elif isinstance(current, tuple):
            if isinstance(raw, list):
                values[item.name] = tuple(str(word).strip().lower() for word in raw if str(word).strip())

    settings = SynthesisSettings(**values)
    try:
        settings.validate()
    except SettingsError:
        return SynthesisSettings()
    return settings


def save_settings(settings: SynthesisSettings, config_path: Path | None = None) -> tuple[bool, str | None]:
    path = config_path or SETTINGS_PATH

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        return False, f"Could not create config folder: {exc}"

    data = asdict(settings)
    data["stable_words"] = list(settings.stable_words)
    payload = json.dumps(data, ensure_ascii=True, indent=2, sort_keys=True)
    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            handle.write(payload)
            handle.flush()
            temp_path = Path(handle.name)

        if temp_path is None:
            return False, "Could not create temporary settings file."
        temp_path.replace(path)
    except OSError as exc:
        if temp_path and temp_path.exists():
            temp_path.unlink(missing_ok=True)
        return False, f"Could not write settings: {exc}"

    return True, None
