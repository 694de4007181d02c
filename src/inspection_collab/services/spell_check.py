"""Advisory spell checking of report text through a language model."""

import json
import logging
import re
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from inspection_collab.domain.spell_check import Language, SpellError

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES: tuple[Language, ...] = ("pt", "en", "ja", "zh")
DEFAULT_LANGUAGE: Language = "pt"

_JSON_OBJECT = re.compile(r"\{[\s\S]*\"errors\"[\s\S]*\}")

_RESPONSE_FORMAT = """
{
  "errors": [
    {
      "original": "%(original)s",
      "suggestion": "%(suggestion)s",
      "position": 0,
      "type": "spelling|punctuation|grammar|agreement",
      "context": "%(context)s",
      "explanation": "%(explanation)s"
    }
  ]
}
"""

SYSTEM_PROMPTS: dict[Language, str] = {
    "pt": (
        "Você é um corretor ortográfico e gramatical ESPECIALISTA em português "
        "brasileiro.\n\n"
        "Sua ÚNICA função é identificar erros em:\n"
        "1. ORTOGRAFIA: palavras escritas incorretamente.\n"
        "2. PONTUAÇÃO: vírgulas, pontos, dois pontos, ponto e vírgula, "
        "acentuação faltando.\n"
        "3. CONCORDÂNCIA nominal, verbal e do particípio.\n"
        "4. GRAMÁTICA: regência verbal/nominal, colocação pronominal.\n\n"
        "REGRAS CRÍTICAS:\n"
        "- NÃO reescreva o texto nem mude o contexto ou significado.\n"
        "- NÃO melhore o estilo ou a fluidez.\n"
        "- APENAS corrija erros EVIDENTES.\n"
        "- Se a frase está correta, não sugira alterações.\n"
        "- O texto pode conter termos técnicos em inglês (PN, TAG, SN etc.); "
        "NÃO corrija isso.\n\n"
        "Responda APENAS em JSON com esta estrutura:"
        + _RESPONSE_FORMAT
        % {
            "original": "palavra ou expressão com erro",
            "suggestion": "correção",
            "context": "trecho da frase onde o erro aparece",
            "explanation": "breve explicação do erro em português",
        }
        + 'Se não houver erros, retorne: {"errors": []}'
    ),
    "en": (
        "You are an expert spelling and grammar checker in English.\n\n"
        "Your ONLY function is to identify errors in:\n"
        "1. SPELLING: misspelled words.\n"
        "2. PUNCTUATION: commas, periods, colons, semicolons, missing "
        "punctuation.\n"
        "3. SUBJECT-VERB AGREEMENT.\n"
        "4. GRAMMAR: article usage, pronoun agreement and similar errors.\n\n"
        "CRITICAL RULES:\n"
        "- DO NOT rewrite the text or change its context or meaning.\n"
        "- DO NOT improve style or fluency.\n"
        "- ONLY correct OBVIOUS errors.\n"
        "- If the sentence is grammatically correct, do not suggest changes.\n"
        "- The text may contain technical terms, abbreviations or codes "
        "(PN, TAG, SN, etc.); DO NOT correct these.\n\n"
        "Respond ONLY in JSON with this structure:"
        + _RESPONSE_FORMAT
        % {
            "original": "word or expression with error",
            "suggestion": "correction",
            "context": "part of the sentence where the error appears",
            "explanation": "brief explanation of the error in English",
        }
        + 'If there are no errors, return: {"errors": []}'
    ),
    "ja": (
        "あなたは日本語のスペルと文法の専門チェッカーです。\n\n"
        "あなたの唯一の機能は、以下のエラーを特定することです：\n"
        "1. スペル（表記）\n2. 句読点\n3. 一致\n4. 文法\n\n"
        "重要なルール:\n"
        "- テキストを書き直したり、意味を変更したりしないでください。\n"
        "- 明らかなエラーのみを修正してください。\n"
        "- 専門用語、略語、コード（PN、TAG、SNなど）は修正しないでください。\n\n"
        "以下の構造のJSON形式でのみ回答してください："
        + _RESPONSE_FORMAT
        % {
            "original": "エラーのある単語または表現",
            "suggestion": "修正",
            "context": "エラーが現れる文の一部",
            "explanation": "日本語でのエラーの簡単な説明",
        }
        + 'エラーがない場合、以下を返してください: {"errors": []}'
    ),
    "zh": (
        "您是中文拼写和语法方面的专业检查员。\n\n"
        "您的唯一功能是识别以下错误：\n"
        "1. 拼写（错别字）\n2. 标点符号\n3. 一致性\n4. 语法\n\n"
        "重要规则：\n"
        "- 不要重写文本，不要改变上下文或含义。\n"
        "- 只纠正明显的错误。\n"
        "- 不要纠正专业术语、缩写或代码（PN、TAG、SN等）。\n\n"
        "仅以以下JSON格式回答："
        + _RESPONSE_FORMAT
        % {
            "original": "有错误的单词或表达",
            "suggestion": "修正",
            "context": "错误出现的句子部分",
            "explanation": "用中文简要解释错误",
        }
        + '如果没有错误，返回: {"errors": []}'
    ),
}

USER_PROMPTS: dict[Language, str] = {
    "pt": (
        "Analise este texto e identifique APENAS erros de ortografia, pontuação, "
        "concordância ou gramática evidente. Termos técnicos como PN, TAG e SN "
        'não são erros.\n\n"{text}"'
    ),
    "en": (
        "Analyze this text and identify ONLY spelling, punctuation, "
        "subject-verb agreement, or obvious grammar errors. Technical terms "
        'like PN, TAG and SN are not errors.\n\n"{text}"'
    ),
    "ja": (
        "このテキストを分析し、スペル、句読点、一致、または明らかな文法エラーのみを"
        "特定してください。PN、TAG、SNなどの専門用語はエラーではありません。"
        '\n\n"{text}"'
    ),
    "zh": (
        "分析此文本，仅识别拼写、标点、一致性或明显的语法错误。"
        'PN、TAG、SN等专业术语不是错误。\n\n"{text}"'
    ),
}


class SpellCheckClient(Protocol):
    """Interface for the language model used by spell checking."""

    async def complete(self, *, model: str, instructions: str, prompt: str) -> str:
        """Return the raw text answer of the model."""


def resolve_language(language: str | None) -> Language:
    """Return a supported language, defaulting to Portuguese."""
    for supported in SUPPORTED_LANGUAGES:
        if language == supported:
            return supported
    return DEFAULT_LANGUAGE


@dataclass
class SpellCheckService:
    """Asks the language model for corrections; never raises."""

    client: SpellCheckClient
    model: str

    async def check(self, text: str, language: str | None = None) -> list[SpellError]:
        """Return suggested corrections, or an empty list on any failure."""
        if not text or not text.strip():
            return []
        resolved = resolve_language(language)
        try:
            answer = await self.client.complete(
                model=self.model,
                instructions=SYSTEM_PROMPTS[resolved],
                prompt=USER_PROMPTS[resolved].replace("{text}", text),
            )
        except Exception:
            logger.exception("Spell check request failed", extra={"language": resolved})
            return []
        errors = parse_spell_errors(answer)
        logger.info(
            "Spell check finished",
            extra={"language": resolved, "errors": len(errors)},
        )
        return errors


def parse_spell_errors(answer: str | None) -> list[SpellError]:
    """Extract suggestions from a model answer, skipping malformed entries."""
    if not answer:
        return []
    match = _JSON_OBJECT.search(answer)
    if match is None:
        logger.warning("Spell check answer contains no JSON")
        return []
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        logger.warning("Spell check answer is not valid JSON")
        return []
    raw_errors = parsed.get("errors") if isinstance(parsed, dict) else None
    if not isinstance(raw_errors, list):
        return []
    errors: list[SpellError] = []
    for raw in raw_errors:
        try:
            errors.append(SpellError.model_validate(raw))
        except ValidationError:
            logger.warning("Skipping malformed spell check suggestion")
    return errors
