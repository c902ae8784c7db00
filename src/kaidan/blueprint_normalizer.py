"""
Blueprint Normalizer

Maintenance rules applied to stored blueprints:
- detail_bank keeps only short, inorganic nouns (a truck, a mirror, a
  corridor); food, weather, taste, mood and other evaluative items go
- constraints.daily_details_min is capped at 1
- anomaly and irreversible_point are checked for wording that implies
  more than one anomaly

All functions are pure; persisting the result is the caller's job.
"""

import copy
import re
from typing import Any, Dict, List, Tuple

MAX_DETAIL_ITEM_LENGTH = 10
MAX_DAILY_DETAILS_MIN = 1

# Items matching any of these are evaluative or too abstract to be a detail
DETAIL_REMOVE_PATTERNS = [
    # food and drink
    re.compile(r"おにぎり|弁当|ラーメン|カレー|パン|米|ご飯|飯|酒|ビール|焼酎|日本酒|コーヒー|お茶|茶|水|ジュース|料理|食事|朝食|昼食|夕食|夜食|おやつ|菓子|スナック"),
    # weather and season evaluation
    re.compile(r"春の|夏の|秋の|冬の|陽気|蒸し暑|暖か|涼し|寒|暑|心地よ|快適|爽やか|うだる|凍える"),
    # taste and smell
    re.compile(r"味|美味|うま|甘|辛|苦|酸|塩|香|匂い|臭|芳|におい"),
    # mood and emotion
    re.compile(r"雰囲気|ムード|静か|穏やか|和やか|賑やか|寂し|悲し|嬉し|楽し|怖|恐|不気味|薄気味|気味悪|気持ち|感じ|印象"),
    # relaxation and festivities
    re.compile(r"酒盛り|宴|パーティ|祭|祝|くつろ|リラックス|休憩|一息|ほっと|安心|安らぎ|癒し"),
    # music and entertainment
    re.compile(r"歌|唄|音楽|カラオケ|島唄|民謡|テレビ|ラジオ|ゲーム"),
    # bodily fear reactions
    re.compile(r"冷や汗|汗|鳥肌|震え|動悸|息苦し|吐き気|めまい|ふらつ"),
    # crying and screaming
    re.compile(r"泣き声|泣|叫び|悲鳴|うめき|すすり"),
    # too abstract
    re.compile(r"時間帯|生活音|日常|非日常|異常|普通|変|おかし"),
]

MULTIPLE_ANOMALY_PATTERNS = [
    re.compile(r"複数の"),
    re.compile(r"いくつもの"),
    re.compile(r"何人もの"),
    re.compile(r"次々と"),
    re.compile(r"それぞれの"),
    re.compile(r"各々の"),
    re.compile(r"多くの"),
    re.compile(r"様々な"),
    re.compile(r"色々な"),
    re.compile(r"2つ以上"),
    re.compile(r"\d+体"),
    re.compile(r"\d+人"),
]


def should_remove_detail_item(item: Any) -> bool:
    if not isinstance(item, str):
        return True
    trimmed = item.strip()
    if not trimmed or len(trimmed) > MAX_DETAIL_ITEM_LENGTH:
        return True
    return any(pattern.search(trimmed) for pattern in DETAIL_REMOVE_PATTERNS)


def normalize_detail_bank(detail_bank: Any) -> Tuple[List[str], List[Any]]:
    """
    Split a detail bank into kept and removed items.

    Returns:
        (normalized, removed), both in original order
    """
    if not isinstance(detail_bank, list):
        return [], []
    normalized, removed = [], []
    for item in detail_bank:
        (removed if should_remove_detail_item(item) else normalized).append(item)
    return normalized, removed


def check_anomaly_violations(blueprint: Dict[str, Any]) -> List[str]:
    """List phrases in anomaly / irreversible_point that suggest several anomalies."""
    violations = []
    fields = {
        "anomaly": blueprint.get("anomaly") or "",
        "irreversible_point": blueprint.get("irreversible_point") or "",
    }
    for pattern in MULTIPLE_ANOMALY_PATTERNS:
        for name, text in fields.items():
            match = pattern.search(text) if isinstance(text, str) else None
            if match:
                violations.append(f"{name} implies multiple anomalies: \"{match.group(0)}\"")
    return violations


def normalize_blueprint(blueprint: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Apply the maintenance rules to a copy of blueprint.

    Returns:
        (normalized_blueprint, changes) where changes maps a field to its
        before/after values and is empty when nothing changed
    """
    normalized = copy.deepcopy(blueprint)
    changes: Dict[str, Any] = {}

    constraints = normalized.get("constraints")
    if isinstance(constraints, dict):
        current_min = constraints.get("daily_details_min", 3)
        if isinstance(current_min, int) and current_min > MAX_DAILY_DETAILS_MIN:
            changes["daily_details_min"] = {"before": current_min, "after": MAX_DAILY_DETAILS_MIN}
            constraints["daily_details_min"] = MAX_DAILY_DETAILS_MIN

    kept, removed = normalize_detail_bank(normalized.get("detail_bank") or [])
    if removed:
        changes["detail_bank"] = {
            "before": list(normalized.get("detail_bank") or []),
            "after": kept,
            "removed": removed,
        }
        normalized["detail_bank"] = kept

    return normalized, changes
