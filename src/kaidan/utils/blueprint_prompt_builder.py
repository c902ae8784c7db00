"""
Prompt builders for blueprint extraction.

Prompts ask the model for JSON only. The source text is embedded in the
prompt and nowhere else; callers must not log the returned string.
"""

import json
from typing import Any, Dict, List

TAG_RULES = """
【タグ正規化ルール（絶対遵守）】
tagsは「検索・分類のためのラベル」であり、文章や要約ではありません。

■ 絶対条件
- 名詞または名詞的概念のみ
- 1タグは最大10文字程度
- 助詞（の・に・を・と・が・は等）を含めない
- 動詞・形容詞・文末表現・時制表現を含めない
- 出来事や状況を説明する文章をtagsにしない

■ 矯正ルール
文章・フレーズになった場合は要素を分解し抽象化：
「鏡台の三段目の引き出しの中身を見ると」→「鏡」「家具」「引き出し」「日常物品」
「夜中に開けたら」→「夜」「屋内」「私物」

■ タグ数：3〜7個（重複・類義語は統合）
"""

BLUEPRINT_RULES = """【絶対ルール】
1. 要約禁止：筋・固有名詞・固有台詞を保持しない。一般化する
2. 怪異は必ず1つだけ：複数の怪異が出てきても、最も核心的な1つに絞る
3. 「何が起きたか」は分かるが「なぜ」は分からない状態にする
4. 出力はBlueprint JSONのみ（前後に余計な文章を書かない）"""

CONSTRAINTS_TEMPLATE = """  "constraints": {
    "no_explanations": true,
    "single_anomaly_only": true,
    "no_emotion_words": true,
    "no_clean_resolution": true,
    "daily_details_min": 3
  },"""

SYSTEM_PROMPT = "あなたは怪談の構造分析専門家です。出力は必ずJSONオブジェクト1つのみです。"


def build_short_text_prompt(text: str) -> str:
    """Single-pass extraction prompt for texts below the long-text threshold."""
    return f"""以下の怪談本文から「Blueprint」を抽出してください。

{BLUEPRINT_RULES}
{TAG_RULES}
【出力形式】
{{
  "tags": ["名詞タグ1", "名詞タグ2", "名詞タグ3"],
  "anomaly": "怪異の核（必ず1つだけ。具体的な名前や場所は抽象化）",
  "normal_rule": "通常の前提（読者が理解できるレベル）",
  "irreversible_point": "世界の前提が不可逆に確定する事実（説明なしで提示できる）",
  "reader_understands": "読者が理解できること（何が起きたか）",
  "reader_cannot_understand": "読者が理解できないこと（なぜ起きたか／正体）",
{CONSTRAINTS_TEMPLATE}
  "allowed_subgenres": ["心霊", "異世界", "ヒトコワ", "禁忌から該当するもの"],
  "detail_bank": ["生活音", "匂い", "時間帯", "生活用品など抽出"],
  "ending_style": "前提が壊れた状態で停止（結末は描かない）"
}}

【怪談本文】
{text}

【出力】"""


def build_part_prompt(text: str, part_num: int, total_parts: int) -> str:
    """Extraction prompt for one chunk of a long text."""
    return f"""これは長文怪談の Part {part_num}/{total_parts} です。
このPartで観測できる範囲で「Blueprint」を抽出してください。

{BLUEPRINT_RULES}
5. このPartで情報が不足している項目は空文字""または空配列[]にしてよい
{TAG_RULES}
【出力形式】
{{
  "tags": ["このPartから抽出した名詞タグ"],
  "anomaly": "このPartで観測できる怪異の核（1つだけ）",
  "normal_rule": "このPartで示される通常の前提",
  "irreversible_point": "このPartで確定する不可逆の事実（あれば）",
  "reader_understands": "このPartで読者が理解できること",
  "reader_cannot_understand": "このPartで読者が理解できないこと",
{CONSTRAINTS_TEMPLATE}
  "allowed_subgenres": [],
  "detail_bank": [],
  "ending_style": ""
}}

【怪談本文 Part {part_num}/{total_parts}】
{text}

【出力】"""


def build_unify_prompt(part_blueprints: List[Dict[str, Any]]) -> str:
    """Prompt that merges per-part blueprints into one."""
    blueprint_texts = "\n\n".join(
        f"【Part {i} Blueprint】\n{json.dumps(bp, ensure_ascii=False, indent=2)}"
        for i, bp in enumerate(part_blueprints, start=1)
    )
    return f"""複数のPart Blueprintを1つに統合してください。

【統合ルール】
1. 各Partの共通する「怪異の核」を1つに確定する（複数は不可）
2. normal_rule / irreversible_point は最も一貫性が高いものを採用または統合
3. 具体的な出来事順序は捨てる（ストーリー再構築禁止）
4. 各Partのtags, detail_bank, allowed_subgenresはマージして重複除去
5. 出力は統合Blueprint JSON 1つのみ
{TAG_RULES}
【出力形式】
{{
  "tags": ["マージ・整理後の名詞タグ3〜7個"],
  "anomaly": "統合された怪異の核（必ず1つだけ）",
  "normal_rule": "統合された通常の前提",
  "irreversible_point": "統合された不可逆の確定点",
  "reader_understands": "読者が理解できること",
  "reader_cannot_understand": "読者が理解できないこと",
{CONSTRAINTS_TEMPLATE}
  "allowed_subgenres": ["マージ結果"],
  "detail_bank": ["マージ結果"],
  "ending_style": "前提が壊れた状態で停止（結末は描かない）"
}}

{blueprint_texts}

【統合Blueprint出力】"""


def build_style_prompt(text: str) -> str:
    """Prompt that extracts a narrative-voice archetype instead of a plot structure."""
    return f"""以下の怪談本文から「語り口の流派（StyleBlueprint）」を抽出してください。
筋・固有名詞・台詞は保持せず、文体の特徴だけを一般化して記述します。

【ルール】
- tone_features は2〜5個の短い特徴
- sample_phrases は本文を引用せず、同じ文体で新しく書いた短い断片を3つ
- sample_phrases に感情語（怖い・恐怖・ゾッと等）を含めない
- style_prohibitions にはこの語り口で避けるべき表現技法を書く

【出力形式】
{{
  "archetype_name": "流派名（10文字程度）",
  "tone_features": ["特徴1", "特徴2"],
  "narrator_stance": "distant | involved | detached",
  "emotion_level": 0,
  "sentence_style": "short | mixed | flowing",
  "onomatopoeia_usage": "none | minimal | moderate",
  "dialogue_style": "rare | functional | natural",
  "style_prohibitions": ["禁止事項1"],
  "sample_phrases": ["断片1", "断片2", "断片3"]
}}

【怪談本文】
{text}

【出力】"""
