# scripts/generate_config.py
"""
A utility script to programmatically generate the config.yaml file.

The whole configuration structure is defined in a Python dictionary and dumped
to YAML, so the file never has manual formatting or indentation errors. The API
key stays a ${GEMINI_API_KEY} placeholder that is resolved at load time.
"""
import argparse
import logging
from pathlib import Path

import yaml

logging.basicConfig(level=logging.INFO, format='%(asctime)s [%(levelname)-8s] %(message)s')

config_data = {
    "api_keys": {
        "gemini": "${GEMINI_API_KEY}",
    },
    "models": {
        "vision": "gemini-2.0-flash",
        "canonicalization": "gemini-2.0-flash",
        "recommendation": "gemini-2.5-flash-lite",
    },
    "gemini": {
        "base_url": "https://generativelanguage.googleapis.com/v1beta",
        "openai_base_url": "https://generativelanguage.googleapis.com/v1beta/openai/",
        "timeout_seconds": 60,
    },
    "generation": {
        "vision_temperature": 0.2,
        "vision_max_tokens": 50,
        "recommendation_temperature": 0.6,
        "recommendation_max_tokens": 300,
    },
    "server": {
        "api_base_url": "http://localhost:8000",
        "client_timeout_seconds": 120,
    },
    "image_input": {
        "allowed_types": ["image/jpeg", "image/png", "image/webp"],
        "max_upload_mb": 10,
    },
}


def main():
    parser = argparse.ArgumentParser(description="Generate the board game recommender config.yaml.")
    parser.add_argument("--output", default="config/config.yaml", help="Where to write the config file.")
    args = parser.parse_args()

    config_path = Path(args.output)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, 'w', encoding='utf-8') as f:
        yaml.dump(config_data, f, sort_keys=False, default_flow_style=False)

    logging.info(f"✅ Configuration written to {config_path}")


if __name__ == "__main__":
    main()
