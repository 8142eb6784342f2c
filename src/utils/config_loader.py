# src/utils/config_loader.py
"""
Handles loading, validation, and resolution of the project's central configuration.

This module uses Pydantic to enforce the structure of the config.yaml file and
substitutes environment variable placeholders (e.g., ${GEMINI_API_KEY}) with their
actual values so the model provider key never has to be written to disk.
"""

import logging
import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, List

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

# Load environment variables from a .env file at the project root
load_dotenv()

# Regex to find all ${VAR_NAME} placeholders in the YAML file
ENV_VAR_PATTERN = re.compile(r"\$\{(.+?)\}")

DEFAULT_CONFIG_PATH = os.getenv("BOARDGAME_CONFIG", "config/config.yaml")


def substitute_env_vars(config_item: Any) -> Any:
    """
    Recursively traverses the config and substitutes ${ENV_VAR} placeholders.
    """
    if isinstance(config_item, dict):
        return {key: substitute_env_vars(value) for key, value in config_item.items()}

    if isinstance(config_item, list):
        return [substitute_env_vars(item) for item in config_item]

    if isinstance(config_item, str):
        for match in ENV_VAR_PATTERN.finditer(config_item):
            env_var_name = match.group(1)
            env_var_value = os.getenv(env_var_name)
            if env_var_value is None:
                raise ValueError(f"Required environment variable '{env_var_name}' is not set!")
            config_item = config_item.replace(f"${{{env_var_name}}}", env_var_value)

    return config_item


# --- Pydantic Models for Config Validation ---
class ApiKeysConfig(BaseModel):
    gemini: str


class ModelsConfig(BaseModel):
    vision: str = "gemini-2.0-flash"
    canonicalization: str = "gemini-2.0-flash"
    recommendation: str = "gemini-2.5-flash-lite"


class GeminiConfig(BaseModel):
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    openai_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    timeout_seconds: float = 60.0


class GenerationConfig(BaseModel):
    vision_temperature: float = Field(0.2, ge=0, le=2)
    vision_max_tokens: int = Field(50, gt=0)
    recommendation_temperature: float = Field(0.6, ge=0, le=2)
    recommendation_max_tokens: int = Field(300, gt=0)


class ServerConfig(BaseModel):
    api_base_url: str = "http://localhost:8000"
    client_timeout_seconds: float = 120.0


class ImageInputConfig(BaseModel):
    allowed_types: List[str] = ["image/jpeg", "image/png", "image/webp"]
    max_upload_mb: float = Field(10.0, gt=0)


class FullConfig(BaseModel):
    """The root Pydantic model for the entire config.yaml file."""
    api_keys: ApiKeysConfig
    models: ModelsConfig = ModelsConfig()
    gemini: GeminiConfig = GeminiConfig()
    generation: GenerationConfig = GenerationConfig()
    server: ServerConfig = ServerConfig()
    image_input: ImageInputConfig = ImageInputConfig()

    # Allow other fields not explicitly defined here for flexibility
    model_config = ConfigDict(extra="allow")


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> FullConfig:
    """Loads, substitutes env vars and validates a configuration file."""
    logging.info(f"Loading configuration from: {config_path}")
    config_path_obj = Path(config_path)
    if not config_path_obj.exists():
        raise FileNotFoundError(f"Configuration file not found at '{config_path}'")

    with open(config_path_obj, 'r', encoding='utf-8') as f:
        raw_config = yaml.safe_load(f) or {}

    # ** Step 1: Substitute environment variables **
    resolved_config = substitute_env_vars(raw_config)

    # ** Step 2: Validate with Pydantic **
    return FullConfig(**resolved_config)


@lru_cache()
def get_config(config_path: str = DEFAULT_CONFIG_PATH) -> FullConfig:
    """
    Returns the application configuration.

    This function is cached to ensure the configuration is processed only once.
    """
    try:
        validated_config = load_config(config_path)
        logging.info("✅ Configuration loaded, resolved, and validated successfully.")
        return validated_config
    except Exception as e:
        logging.exception(f"FATAL: Could not load configuration. Error: {e}")
        raise
