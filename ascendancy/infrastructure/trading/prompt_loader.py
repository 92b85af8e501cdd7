"""
Prompt loader for the reasoning adapter.

Loads prompt templates from YAML configuration.
"""

import logging
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

_FALLBACK_PROMPTS: dict[str, dict[str, str]] = {
    "sentiment_judgment": {
        "system": "You are a financial sentiment analyst.",
        "user_template": (
            "Rate the {source} sentiment about {symbol}:\n{samples}\n\n"
            "Answer with SENTIMENT_SCORE: <0-1>, CONFIDENCE: <0-1>, REASONING: <text>"
        ),
    },
    "trade_proposals": {
        "system": "You are a disciplined portfolio manager.",
        "user_template": (
            "{portfolio}\n\n{sentiment}\n\nPropose trades as TRADE_n: blocks with "
            "SYMBOL, ACTION, QUANTITY, REASONING, CONFIDENCE."
        ),
    },
}


class PromptLoader:
    """Load and render prompt templates from YAML."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Args:
            config_path: Path to a prompts.yaml file. Defaults to the one
                shipped next to this module.
        """
        self.config_path = config_path or Path(__file__).parent / "prompts.yaml"
        self.prompts = self._load_prompts()

    def _load_prompts(self) -> dict[str, Any]:
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                prompts = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.error("Failed to load prompts from %s: %s", self.config_path, exc)
            return dict(_FALLBACK_PROMPTS)
        logger.debug("Loaded prompts from %s", self.config_path)
        return prompts

    def system_prompt(self, name: str) -> str:
        entry = self.prompts.get(name) or _FALLBACK_PROMPTS[name]
        return entry.get("system", "")

    def render(self, name: str, **values: Any) -> str:
        """Fill the user template ``name`` with ``values``."""
        entry = self.prompts.get(name) or _FALLBACK_PROMPTS[name]
        return entry.get("user_template", "").format(**values)


_prompt_loader: Optional[PromptLoader] = None


def get_prompt_loader() -> PromptLoader:
    """Get global prompt loader instance."""
    global _prompt_loader
    if _prompt_loader is None:
        _prompt_loader = PromptLoader()
    return _prompt_loader
