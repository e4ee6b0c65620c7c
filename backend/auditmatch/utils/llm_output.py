# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  LLM输出解析与修复 - 从可能截断或夹带噪声的LLM响应中恢复JSON
  LLM Output Parsing and Repair - Recover JSON from truncated or noisy LLM responses.

修复流水线 / Repair pipeline:
  每个阶段都是纯函数，返回带状态标签的 ParseOutcome；按顺序尝试，第一个 ok 即停止，
  fatal 立即终止。
  Every stage is a pure function returning a tagged ParseOutcome. Stages run in
  order; the first ``ok`` wins and a ``fatal`` stops the chain.

  问题抽取 / Question extraction:
    strip fences -> direct parse -> flat-object pattern -> character scanning
  证据判断 / Evidence judgment:
    strip fences -> direct parse -> embedded object -> depth balancing
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from auditmatch.exceptions import DataIntegrityError
from auditmatch.utils.logger import get_logger

logger = get_logger(__name__)

REQUIRED_QUESTION_FIELDS = ("id", "text", "category", "keywords", "description")
REQUIRED_JUDGMENT_FIELDS = ("hasAnswer", "confidence")

_FLAT_OBJECT_RE = re.compile(r"\{[^{}]*\}")
_QUESTIONS_KEY_RE = re.compile(r'"questions"\s*:\s*\[')


class ParseStatus(str, Enum):
    OK = "ok"
    RECOVERABLE = "recoverable"
    FATAL = "fatal"


@dataclass(frozen=True)
class ParseOutcome:
    """
    解析结果 / Tagged result of one parse stage

    Attributes:
        status: ok / recoverable（交给下一阶段）/ fatal（终止）
        data: 解析出的数据 / Parsed data when ``status`` is ok
        error: 错误代码 / Error code otherwise
        stage: 产生该结果的阶段 / Stage that produced the outcome
    """

    status: ParseStatus
    data: Any = None
    error: str = ""
    stage: str = ""

    @property
    def ok(self) -> bool:
        return self.status is ParseStatus.OK

    @classmethod
    def success(cls, data: Any, stage: str) -> "ParseOutcome":
        return cls(ParseStatus.OK, data=data, stage=stage)

    @classmethod
    def recoverable(cls, error: str, stage: str) -> "ParseOutcome":
        return cls(ParseStatus.RECOVERABLE, error=error, stage=stage)

    @classmethod
    def fatal(cls, error: str, stage: str) -> "ParseOutcome":
        return cls(ParseStatus.FATAL, error=error, stage=stage)


Stage = Callable[[str], ParseOutcome]


# ----------------------------------------------------------------------
# Shared helpers
# ----------------------------------------------------------------------


def strip_code_fences(text: str) -> str:
    """
    去除 markdown 代码围栏

    Strip a leading ```json / ``` fence and a trailing ``` fence.

    Example:
        >>> strip_code_fences('```json\\n{"a": 1}\\n```')
        '{"a": 1}'
    """
    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        first_newline = cleaned.find("\n")
        header = cleaned[3:first_newline] if first_newline != -1 else cleaned[3:]
        if header.strip().lower() in {"", "json", "jsonc"}:
            cleaned = cleaned[first_newline + 1:] if first_newline != -1 else ""
        else:
            cleaned = cleaned[3:]
        if cleaned.rstrip().endswith("```"):
            cleaned = cleaned.rstrip()[:-3]
    return cleaned.strip()


def _try_load(text: str) -> Optional[Any]:
    try:
        return json.loads(text)
    except (ValueError, TypeError):
        return None


def _is_complete_question(item: Any) -> bool:
    """Every required key present and not null; empty lists and strings count as present."""
    if not isinstance(item, dict):
        return False
    if any(item.get(field) is None for field in REQUIRED_QUESTION_FIELDS):
        return False
    return bool(str(item["text"]).strip())


def _iter_balanced_objects(text: str, start: int = 0) -> Iterable[str]:
    """
    按括号深度切出顶层对象片段

    Yield every top-level ``{...}`` segment from *start*, tracking depth plus
    string and escape state. An unterminated trailing object is not yielded.
    """
    depth = 0
    in_string = False
    escape = False
    begin = -1
    for idx in range(start, len(text)):
        ch = text[idx]
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "{":
            if depth == 0:
                begin = idx
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                yield text[begin: idx + 1]


# ----------------------------------------------------------------------
# Stages
# ----------------------------------------------------------------------


def parse_direct(text: str) -> ParseOutcome:
    data = _try_load(text)
    if data is None:
        return ParseOutcome.recoverable("json_parse_failed", "direct")
    return ParseOutcome.success(data, "direct")


def recover_by_pattern(text: str) -> ParseOutcome:
    """
    基于模式恢复扁平问题对象

    Collect every flat ``{...}`` object (no nested braces) that parses on its own
    and carries all required question fields.
    """
    questions = []
    for match in _FLAT_OBJECT_RE.finditer(text):
        item = _try_load(match.group(0))
        if _is_complete_question(item):
            questions.append(item)
    if not questions:
        return ParseOutcome.recoverable("no_complete_objects", "pattern")
    logger.info("Repaired JSON with %d complete questions", len(questions))
    return ParseOutcome.success({"questions": questions}, "pattern")


def recover_by_scanning(text: str) -> ParseOutcome:
    """
    逐字符扫描恢复问题对象

    Scan from the ``"questions": [`` array (or the start of the text) and keep
    each complete top-level object that parses and has ``id`` and ``text``.
    """
    match = _QUESTIONS_KEY_RE.search(text)
    start = match.end() if match else 0

    questions = []
    for segment in _iter_balanced_objects(text, start):
        item = _try_load(segment)
        if isinstance(item, dict) and item.get("id") and item.get("text"):
            questions.append(item)
    if not questions:
        return ParseOutcome.recoverable("no_complete_objects", "scanning")
    logger.info("Alternative repair successful with %d questions", len(questions))
    return ParseOutcome.success({"questions": questions}, "scanning")


def recover_embedded_object(text: str) -> ParseOutcome:
    """Find the first complete JSON object inside surrounding prose."""
    for segment in _iter_balanced_objects(text):
        item = _try_load(segment)
        if isinstance(item, dict):
            return ParseOutcome.success(item, "embedded")
    return ParseOutcome.recoverable("no_embedded_object", "embedded")


def missing_closers(text: str) -> str:
    """
    计算补全所需的闭合符

    Return the closers needed to balance *text*: a closing quote when a string
    is left open, then ``}``/``]`` in reverse nesting order.
    """
    stack: List[str] = []
    in_string = False
    escape = False
    for ch in text:
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "{[":
            stack.append("}" if ch == "{" else "]")
        elif ch in "}]" and stack:
            stack.pop()

    closers = '"' if in_string else ""
    return closers + "".join(reversed(stack))


def recover_by_balancing(text: str) -> ParseOutcome:
    """
    深度平衡修复

    Append the missing closers and retry the parse once.
    """
    candidate = text.rstrip()
    closers = missing_closers(candidate)
    if not closers:
        return ParseOutcome.recoverable("already_balanced", "balancing")
    if not closers.startswith('"'):
        candidate = candidate.rstrip(",")
    data = _try_load(candidate + closers)
    if data is None:
        return ParseOutcome.recoverable("balancing_failed", "balancing")
    logger.info("Balanced truncated JSON by appending %r", closers)
    return ParseOutcome.success(data, "balancing")


def run_recovery(text: str, stages: Sequence[Stage], validate: Callable[[Any], ParseOutcome]) -> ParseOutcome:
    """
    顺序执行修复阶段

    Run *stages* in order, validating each parsed result. Returns the first
    valid outcome, the first fatal one, or the last recoverable one.
    """
    outcome = ParseOutcome.recoverable("no_stages", "none")
    for stage in stages:
        outcome = stage(text)
        if outcome.ok:
            outcome = validate(outcome.data)
        if outcome.ok or outcome.status is ParseStatus.FATAL:
            return outcome
        logger.debug("Parse stage %s failed: %s", stage.__name__, outcome.error)
    return outcome


# ----------------------------------------------------------------------
# Validation
# ----------------------------------------------------------------------


def validate_questions(data: Any) -> ParseOutcome:
    """
    校验问题抽取结果

    Accept ``{"questions": [...]}`` or a bare list; drop entries missing any of
    id/text/category/keywords/description.
    """
    if isinstance(data, dict):
        items = data.get("questions")
    else:
        items = data
    if not isinstance(items, list):
        return ParseOutcome.recoverable("missing_questions_array", "validate")

    valid = []
    for index, item in enumerate(items, start=1):
        if _is_complete_question(item):
            valid.append(item)
        else:
            logger.info("Question %d missing required fields, removing", index)
    logger.info("Validated %d questions", len(valid))
    return ParseOutcome.success(valid, "validate")


def validate_judgment(data: Any) -> ParseOutcome:
    if not isinstance(data, dict):
        return ParseOutcome.recoverable("not_an_object", "validate")
    missing = [field for field in REQUIRED_JUDGMENT_FIELDS if field not in data]
    if missing:
        return ParseOutcome.fatal(f"missing required fields: {', '.join(missing)}", "validate")
    return ParseOutcome.success(data, "validate")


QUESTION_STAGES: Sequence[Stage] = (parse_direct, recover_by_pattern, recover_by_scanning)
JUDGMENT_STAGES: Sequence[Stage] = (parse_direct, recover_embedded_object, recover_by_balancing)


def _raise_integrity_error(raw: str, outcome: ParseOutcome) -> None:
    logger.error(
        "JSON parsing error at stage %s (%s); raw response length: %d",
        outcome.stage,
        outcome.error,
        len(raw or ""),
    )
    raise DataIntegrityError(
        f"Failed to parse AI response as JSON: {outcome.error}",
        raw_text=raw or "",
    )


def parse_questions_payload(raw: str) -> List[Dict[str, Any]]:
    """
    解析问题抽取响应

    Parse an extraction response into a list of validated question dicts.

    Raises:
        DataIntegrityError: 无法恢复 / Unrecoverable response
    """
    if not raw or not raw.strip():
        _raise_integrity_error(raw, ParseOutcome.fatal("empty_response", "input"))
    outcome = run_recovery(strip_code_fences(raw), QUESTION_STAGES, validate_questions)
    if not outcome.ok:
        _raise_integrity_error(raw, outcome)
    return outcome.data


def parse_judgment_payload(raw: str) -> Dict[str, Any]:
    """
    解析证据判断响应

    Parse a judgment response into a dict carrying at least ``hasAnswer`` and
    ``confidence``.

    Raises:
        DataIntegrityError: 无法恢复或缺少必需字段 / Unrecoverable or missing required fields
    """
    if not raw or not raw.strip():
        _raise_integrity_error(raw, ParseOutcome.fatal("empty_response", "input"))
    outcome = run_recovery(strip_code_fences(raw), JUDGMENT_STAGES, validate_judgment)
    if not outcome.ok:
        _raise_integrity_error(raw, outcome)
    return outcome.data
