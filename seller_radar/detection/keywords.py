"""
Seller Radar — Target-Country Keyword Table

One versioned table of every keyword, phrase, and regex the classifier and
extractor consult. Customization is an additive merge: custom keywords are
appended to the location list and never replace anything.

Patterns are stored as source strings so the table stays a plain, comparable,
serializable value; consumers compile them once at construction.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, Field

TABLE_VERSION = "2024.1"


class NamePattern(BaseModel):
    """A structural seller-naming pattern."""

    model_config = {"frozen": True}

    name: str
    pattern: str
    ignore_case: bool = False

    def compile(self) -> re.Pattern[str]:
        return re.compile(self.pattern, re.IGNORECASE if self.ignore_case else 0)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

LOCATION_KEYWORDS_EN: tuple[str, ...] = (
    "China", "CN", "PRC", "Guangdong", "Shenzhen", "Shanghai", "Beijing", "Zhejiang",
    "Hangzhou", "Yiwu", "Dongguan", "Fujian", "Jiangsu", "Nanjing", "Guangzhou",
    "Tianjin", "Shandong", "Hebei", "Zhongshan", "Jiangmen", "Foshan", "Huizhou",
    "Xiamen", "Changsha", "Fuzhou", "Hefei", "Wuhan", "Ningbo", "Suzhou", "Wenzhou",
    "Jinhua", "Taizhou", "Nanchang", "Jiaxing", "Shaoxing", "Humen", "Quanzhou",
)

LOCATION_KEYWORDS_ZH: tuple[str, ...] = (
    "中国", "广东", "深圳", "上海", "北京", "浙江", "杭州", "义乌", "东莞", "福建",
    "江苏", "南京", "广州", "天津", "山东", "河北", "中山", "江门", "佛山", "惠州",
    "厦门", "长沙", "福州", "合肥", "武汉", "宁波", "苏州", "温州", "金华", "台州",
    "南昌", "嘉兴", "绍兴", "虎门", "泉州", "廣東", "江蘇",
)

_PINYIN_SYLLABLES = (
    "shen|guang|zhe|jiang|xin|hua|tian|long|feng|sheng|xing|hong|jia|mei|rui|"
    "yuan|tong|kang|hui|jun|ming|fu|yi|da|hai"
)

NAME_PATTERNS: tuple[NamePattern, ...] = (
    NamePattern(
        name="company_suffix",
        pattern=(
            r"(?:trading|store|mall|tech|direct|official|flagship|home|life|world|"
            r"best|top|good|new|first|great)\s*(?:co|ltd|inc|shop|store)\b"
        ),
        ignore_case=True,
    ),
    NamePattern(name="han_characters", pattern=r"[一-龥]"),
    NamePattern(
        name="pinyin_blend",
        pattern=rf"\b(?:{_PINYIN_SYLLABLES})(?:{_PINYIN_SYLLABLES})",
        ignore_case=True,
    ),
    NamePattern(name="alnum_blend", pattern=r"^[A-Za-z]+[0-9]+[A-Za-z]*$"),
    NamePattern(name="double_camel", pattern=r"^[A-Z][a-z]+[A-Z][a-z]+$"),
)

POSTAL_CODE_PATTERN = r"(?<!\d)\d{6}(?!\d)"

PHONE_PATTERNS: tuple[str, ...] = (
    r"(?:\+|00)\s*86[\s\-()]*\d",      # international prefix
    r"(?<!\d)1[3-9]\d[\s\-]?\d{4}[\s\-]?\d{4}(?!\d)",   # domestic mobile
)

HIGH_VALUE_PHRASES: tuple[str, ...] = (
    "located in china",
    "based in china",
    "ships from china",
    "mainland china",
    "people's republic of china",
    "country/region: cn",
    "country/region: china",
    "country: china",
    "中华人民共和国",
    "中国大陆",
)

PLATFORM_MARKERS: tuple[str, ...] = (
    "wechat", "weixin", "alipay", "taobao", "tmall", "1688.com", "aliexpress",
    "qq.com", "163.com", "126.com", "unionpay", "微信", "支付宝",
)

CCTLD_PATTERN = r"\b[a-z0-9-]+(?:\.[a-z0-9-]+)*\.(?:com\.|net\.|org\.)?cn\b"


# ---------------------------------------------------------------------------
# Table
# ---------------------------------------------------------------------------

class KeywordTable(BaseModel):
    """Versioned heuristic table for the target country."""

    model_config = {"frozen": True}

    version: str = TABLE_VERSION
    location_keywords: tuple[str, ...] = LOCATION_KEYWORDS_EN + LOCATION_KEYWORDS_ZH
    name_patterns: tuple[NamePattern, ...] = NAME_PATTERNS
    postal_code_pattern: str = POSTAL_CODE_PATTERN
    phone_patterns: tuple[str, ...] = PHONE_PATTERNS
    high_value_phrases: tuple[str, ...] = HIGH_VALUE_PHRASES
    platform_markers: tuple[str, ...] = PLATFORM_MARKERS
    cctld_pattern: str = CCTLD_PATTERN
    custom_keywords: tuple[str, ...] = Field(default=())

    def with_custom_keywords(self, extra: list[str] | tuple[str, ...]) -> KeywordTable:
        """
        Return a copy with extra location keywords merged in.

        Blank and duplicate (case-insensitive) keywords are ignored; the
        default keywords always keep their position.
        """
        seen = {k.lower() for k in self.location_keywords}
        added: list[str] = []
        for keyword in extra:
            cleaned = keyword.strip()
            if not cleaned or cleaned.lower() in seen:
                continue
            seen.add(cleaned.lower())
            added.append(cleaned)

        if not added:
            return self

        return self.model_copy(
            update={
                "version": f"{self.version}+custom{len(self.custom_keywords) + len(added)}",
                "location_keywords": self.location_keywords + tuple(added),
                "custom_keywords": self.custom_keywords + tuple(added),
            }
        )

    def find_high_value_phrase(self, text: str | None) -> str | None:
        """Return the first explicit country-of-origin phrase found in text."""
        if not text:
            return None
        lowered = text.lower()
        for phrase in self.high_value_phrases:
            if phrase.lower() in lowered:
                return phrase
        return None


DEFAULT_TABLE = KeywordTable()


def keyword_regex(keyword: str) -> re.Pattern[str]:
    """
    Compile a case-insensitive matcher for one location keyword.

    Short ASCII keywords ("CN", "PRC") only match as whole words; everything
    else is a plain substring match.
    """
    escaped = re.escape(keyword)
    if keyword.isascii() and keyword.isalnum() and len(keyword) <= 3:
        return re.compile(rf"(?<![A-Za-z0-9]){escaped}(?![A-Za-z0-9])", re.IGNORECASE)
    return re.compile(escaped, re.IGNORECASE)
