"""Task-category profiles used for keyword and pattern scoring."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Pattern, Sequence, Tuple

from llm_gateway.domain.models import TaskType


PATTERN_MULTIPLIER = 1.5


@dataclass(frozen=True)
class TaskProfile:
    """Each keyword hit adds ``weight``; each pattern hit adds ``weight * 1.5``."""

    keywords: Tuple[str, ...]
    patterns: Tuple[Pattern[str], ...]
    weight: float


def _profile(
    keywords: Sequence[str], patterns: Sequence[str], weight: float
) -> TaskProfile:
    return TaskProfile(
        keywords=tuple(keyword.lower() for keyword in keywords),
        patterns=tuple(re.compile(pattern, re.IGNORECASE) for pattern in patterns),
        weight=weight,
    )


# Declaration order breaks score ties; conversation is the catch-all.
TASK_PROFILES: Dict[TaskType, TaskProfile] = {
    TaskType.CODING: _profile(
        keywords=(
            "write code", "programming", "function", "algorithm", "code",
            "script", "debug", "API", "interface", "class", "method",
            "variable", "bug", "error", "python", "javascript", "java",
            "golang", "rust", "cpp", "c++", "html", "css", "sql", "bash",
            "shell", "regex",
            "代码", "编程", "函数", "算法", "脚本", "调试", "实现",
        ),
        patterns=(
            r"write.*?code|implement.*?function",
            r"develop.*?system|build.*?application",
            r"fix.*?bug|solve.*?problem",
            r"optimize.*?code|refactor.*?code",
            r"design.*?algorithm|implement.*?algorithm",
        ),
        weight=0.8,
    ),
    TaskType.ANALYSIS: _profile(
        keywords=(
            "analysis", "statistics", "data", "report", "chart", "trend",
            "comparison", "analyze", "explanation", "description", "research",
            "investigation", "evaluation",
            "分析", "统计", "数据", "报告", "趋势", "比较", "研究", "评估",
        ),
        patterns=(
            r"analyze.*?data|data.*?analysis",
            r"statistics.*?information|information.*?statistics",
            r"explain.*?phenomenon|phenomenon.*?explanation",
            r"compare.*?differences|contrast.*?results",
        ),
        weight=0.7,
    ),
    TaskType.CREATIVE: _profile(
        keywords=(
            "creation", "writing", "story", "article", "poetry", "novel",
            "script", "creative", "imagination", "creativity", "design", "art",
            "inspiration",
            "创作", "写作", "故事", "文章", "诗", "小说", "创意",
        ),
        patterns=(
            r"write.*?story|create.*?article",
            r"design.*?solution|creative.*?idea",
            r"write.*?poetry|create.*?poem",
        ),
        weight=0.6,
    ),
    TaskType.TRANSLATION: _profile(
        keywords=(
            "translation", "translate", "English", "Chinese", "Japanese",
            "Korean", "French", "German", "language", "conversion",
            "翻译", "英文", "中文", "日文", "语言",
        ),
        patterns=(
            r"translate.*?to|translate.*?into",
            r"language.*?conversion|convert.*?language",
        ),
        weight=0.9,
    ),
    TaskType.CONVERSATION: _profile(
        keywords=(
            "chat", "conversation", "communication", "discussion",
            "suggestion", "opinion", "hello", "help", "talk", "discuss",
            "advice",
            "聊天", "对话", "你好", "帮助", "建议", "讨论",
        ),
        patterns=(
            r"hello|hi|hey",
            r"help.*?me|I.*?need",
            r"give.*?suggestion|provide.*?advice",
        ),
        weight=0.5,
    ),
}

TASK_LABELS: Dict[TaskType, str] = {
    TaskType.CODING: "programming task",
    TaskType.ANALYSIS: "analysis task",
    TaskType.CREATIVE: "creative task",
    TaskType.TRANSLATION: "translation task",
    TaskType.CONVERSATION: "conversation task",
}
