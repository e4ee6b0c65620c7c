# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  提示词模板 - 问题抽取与证据判断
  Prompt templates - Question extraction and evidence judgment.
"""

QUESTION_CATEGORIES = (
    "Clinical/Medical",
    "Claims & Appeals",
    "Access & Authorization",
    "Privacy & Security",
    "Provider Relations",
    "HR",
    "Financial Compliance",
    "IT Security",
    "Operations",
    "Legal",
    "Other",
)


def question_extraction_prompt(text: str, filename: str, chunk_info: str = "") -> str:
    categories = ", ".join(QUESTION_CATEGORIES)
    return f"""You are an audit question extractor. Extract audit compliance questions from this document{chunk_info} and return them as a structured JSON array.

Focus on extracting questions that:
- Ask "Does the P&P state..."
- Require Yes/No answers with specific policy citations
- Reference specific regulatory requirements or APL sections
- Ask about compliance with contractual obligations

IMPORTANT: You MUST return complete, valid JSON. Ensure all JSON objects are properly closed.

Return ONLY valid JSON in this exact format (no markdown, no explanations):

{{
  "questions": [
    {{
      "id": 1,
      "text": "Full question text here - must be the exact compliance question",
      "category": "Clinical/Medical",
      "keywords": ["keyword1", "keyword2", "keyword3"],
      "description": "Brief description of what this question seeks to verify",
      "requiresEvidence": true
    }}
  ]
}}

Categories: {categories}

Guidelines:
- Extract only questions that require definitive Yes/No compliance answers
- Focus on "Does the P&P state..." format questions
- Include regulatory references, time periods, specific requirements in keywords
- Keep descriptions under 150 characters
- Set requiresEvidence to true for all compliance questions
- Ensure JSON is complete and valid - double-check closing braces and quotes

Document: {filename}{chunk_info}
Content: {text}"""


def evidence_judgment_prompt(question_text: str, document_name: str, excerpt: str) -> str:
    return f"""You are a compliance auditor. Given a specific audit question and a policy document, determine if the policy provides evidence to answer the question with a definitive YES or NO.

AUDIT QUESTION: "{question_text}"

POLICY DOCUMENT: {document_name}
CONTENT: {excerpt}

Analyze the policy document and respond with ONLY valid JSON in this format:

{{
  "hasAnswer": true/false,
  "confidence": "high/medium/low",
  "answer": "yes/no/partial",
  "evidence": "Exact text from the document that provides the evidence",
  "pageReference": "Page number or section reference if available",
  "explanation": "Brief explanation of why this answers YES or NO to the question"
}}

Guidelines:
- hasAnswer: true ONLY if the policy directly and clearly addresses the specific question
- answer: "yes" if the requirement IS met/stated, "no" if it is NOT met/contradicted, "partial" if partially addressed
- evidence: Must be the EXACT text from the document (verbatim quote), not paraphrased
- Keep evidence focused and under 500 characters - include the most relevant sentence(s)
- confidence: "high" only if evidence directly answers the question, "medium" if related but not exact, "low" if tangential
- explanation: Brief reasoning for the YES/NO determination
- Only include pageReference if explicitly mentioned in the text

IMPORTANT: Only return hasAnswer: true if you find definitive evidence that directly answers the audit question."""
