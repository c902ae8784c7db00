"""
Built-in fallback blueprint.

Used when no stored blueprint matches the requested word. It is never
written to the database; the negative id keeps it apart from real rows.
"""

import copy
from typing import Any, Dict

GENERIC_BLUEPRINT_ID = -1
GENERIC_BLUEPRINT_TITLE = "汎用怪談Blueprint"
GENERIC_BLUEPRINT_QUALITY = 60

GENERIC_BLUEPRINT_DATA: Dict[str, Any] = {
    "anomaly": "日常の中に紛れ込んだ、説明できない違和感。それは人の形をしていたり、音だったり、気配だったりする。正体は分からない。",
    "normal_rule": "語り手は普通の日常を送っている。特別な能力も知識もない一般人。周囲も普通。",
    "irreversible_point": "「おかしい」と気づいた瞬間、もう元の日常には戻れないと直感する。逃げても、忘れようとしても、何かが変わってしまった。",
    "reader_understands": "何かがおかしいこと。語り手が恐怖を感じていること。",
    "reader_cannot_understand": "それが何なのか。なぜ起きたのか。これからどうなるのか。",
    "constraints": {
        "no_explanations": True,
        "single_anomaly_only": True,
        "no_emotion_words": True,
        "no_clean_resolution": True,
        "daily_details_min": 2,
    },
    "allowed_subgenres": ["心霊", "異世界", "ヒトコワ", "禁忌"],
    "detail_bank": ["時計の音", "蛍光灯の明かり", "エアコンの音", "窓の外の音"],
    "ending_style": "前提が崩れたまま終わる。解決も説明もしない。",
    "ending_mode": "open",
}


def get_generic_blueprint() -> Dict[str, Any]:
    """Return the fallback blueprint shaped like a search result."""
    return {
        "id": GENERIC_BLUEPRINT_ID,
        "title": GENERIC_BLUEPRINT_TITLE,
        "blueprint": copy.deepcopy(GENERIC_BLUEPRINT_DATA),
        "tags": ["汎用", "フォールバック"],
        "quality_score": GENERIC_BLUEPRINT_QUALITY,
        "similarity": 0.0,
    }


def is_generic_blueprint(blueprint_id: int) -> bool:
    return blueprint_id == GENERIC_BLUEPRINT_ID
