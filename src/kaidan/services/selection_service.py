"""
Blueprint selection service.

Chooses the structural blueprint (and optionally a style blueprint) that
feeds story generation for a requested word. Selection never fails: the
built-in generic blueprint is the last resort.

Order for a non-empty word:
1. hit: best keyword match with quality >= MIN_QUALITY_HIT
2. near: best keyword match with quality >= MIN_QUALITY_NEAR
3. near: a random blueprint with quality >= MIN_QUALITY_RANDOM
4. generic: the built-in fallback

An empty word skips the keyword steps and reports "random" when a
random blueprint is found.
"""

import logging
from typing import Dict, Any, Optional

from src.kaidan.generic_blueprint import get_generic_blueprint
from src.kaidan.utils.repository import BlueprintRepository
from .style_blueprint_service import StyleBlueprintService

logger = logging.getLogger(__name__)

MIN_QUALITY_HIT = 70
MIN_QUALITY_NEAR = 30
MIN_QUALITY_RANDOM = 50
HIT_TOP_K = 3


class SelectionService:
    """Service for picking blueprints at generation time."""

    def __init__(
        self,
        repository: BlueprintRepository,
        style_service: Optional[StyleBlueprintService] = None
    ):
        self.repository = repository
        self.style_service = style_service

    def _result(self, blueprint: Dict[str, Any], fallback_used: bool, reason: str) -> Dict[str, Any]:
        logger.info(
            f"Blueprint selection {reason.upper()}: id={blueprint['id']} "
            f"quality={blueprint['quality_score']}"
        )
        return {"blueprint": blueprint, "fallback_used": fallback_used, "fallback_reason": reason}

    def select_blueprint(self, word: Optional[str]) -> Dict[str, Any]:
        """
        Select a structural blueprint for word.

        Returns:
            {"blueprint": search result, "fallback_used": bool,
             "fallback_reason": "hit" | "near" | "random" | "generic"}
        """
        word = (word or "").strip()

        if not word:
            random_pick = self.repository.random(MIN_QUALITY_RANDOM)
            if random_pick:
                return self._result(random_pick, False, "random")
            return self._result(get_generic_blueprint(), True, "generic")

        hits = self.repository.search(word, match_count=HIT_TOP_K, min_quality=MIN_QUALITY_HIT)
        if hits:
            return self._result(hits[0], False, "hit")

        near = self.repository.search(word, match_count=1, min_quality=MIN_QUALITY_NEAR)
        if near:
            return self._result(near[0], True, "near")

        random_pick = self.repository.random(MIN_QUALITY_RANDOM)
        if random_pick:
            return self._result(random_pick, True, "near")

        return self._result(get_generic_blueprint(), True, "generic")

    def select_for_generation(self, word: Optional[str]) -> Dict[str, Any]:
        """
        Select a structural blueprint and a style blueprint, recording style usage.

        The style blueprint is None when there is no style service or no
        active style blueprint.
        """
        selection = self.select_blueprint(word)
        style = None
        if self.style_service is not None:
            style = self.style_service.select_for_generation()
            if style:
                self.style_service.record_usage(style["id"])
                logger.info(f"Style blueprint selected: id={style['id']}")
        selection["style_blueprint"] = style
        return selection
