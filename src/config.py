import importlib
import os

_ENV_LOADED = False

DEFAULT_JUPITER_BASE_URL = "https://api.jup.ag"
DEFAULT_COST_BASIS_FILE = "cost_basis.json"
DEFAULT_QUOTE_DEBOUNCE_MS = 300


def _load_env() -> None:
    global _ENV_LOADED
    if _ENV_LOADED:
        return
    try:
        dotenv = importlib.import_module("dotenv")
    except Exception as exc:  # pragma: no cover - defensive
        raise SystemExit(
            "python-dotenv is required (pip install -e .)"
        ) from exc
    dotenv.load_dotenv()
    _ENV_LOADED = True


def get_env(
    name: str, default: str | None = None, required: bool = False
) -> str | None:
    _load_env()
    value = os.environ.get(name, default)
    if required and (value is None or value == ""):
        raise SystemExit(f"{name} env var is required")
    return value


def cost_basis_file() -> str:
    return get_env("COST_BASIS_FILE", DEFAULT_COST_BASIS_FILE) or DEFAULT_COST_BASIS_FILE


def quote_debounce_seconds() -> float:
    raw = get_env("QUOTE_DEBOUNCE_MS", str(DEFAULT_QUOTE_DEBOUNCE_MS))
    return max(float(raw), 0.0) / 1000.0
