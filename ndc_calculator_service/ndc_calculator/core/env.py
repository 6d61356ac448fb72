import os
from pathlib import Path

from dotenv import load_dotenv

# ndc_calculator_service/config.env unless NDC_CONFIG_ENV points elsewhere
DEFAULT_ENV_PATH = Path(__file__).resolve().parents[2] / "config.env"


def load_env() -> Path:
    env_path = Path(os.getenv("NDC_CONFIG_ENV") or DEFAULT_ENV_PATH)
    # real environment variables win over the file
    load_dotenv(dotenv_path=env_path, override=False)
    return env_path
