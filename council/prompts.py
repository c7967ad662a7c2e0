"""Prompt templates for the peer-review and finalize stages."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence
import string
import textwrap

from council.errors import NoSourceDocuments
from council.store import AnswerDocument, ReviewDocument


@dataclass
class ReviewPrompt:
    text: str
    included: List[str]
    excluded_model: Optional[str]


def response_label(index: int) -> str:
    """Spreadsheet-style label: 0 -> A, 25 -> Z, 26 -> AA, 702 -> AAA."""
    letters = string.ascii_uppercase
    label = ""
    value = index + 1
    while value:
        value, remainder = divmod(value - 1, len(letters))
        label = letters[remainder] + label
    return f"Response {label}"


def select_answers(answers: Sequence[AnswerDocument], excluded_model: str | None) -> tuple[List[AnswerDocument], Optional[str]]:
    """Drop the excluded model's answer; return the kept answers and the matched model id."""
    ordered = sorted(answers, key=lambda doc: doc.model_id)
    if not excluded_model:
        return ordered, None
    wanted = excluded_model.strip().lower()
    kept = [doc for doc in ordered if doc.model_id.lower() != wanted]
    matched = next((doc.model_id for doc in ordered if doc.model_id.lower() == wanted), None)
    return kept, matched


REVIEW_TEMPLATE = textwrap.dedent(
    """\
    You are evaluating different responses to the following question:

    Question: {question}

    Here are the responses from different models (anonymized):

    {responses}

    Your task:
    1. First, evaluate each response individually. For each response, explain what it does well and what it does poorly.
    2. Then, at the very end of your response, provide a final ranking.

    IMPORTANT: Your final ranking MUST be formatted EXACTLY as follows:
    - Start with the line "FINAL RANKING:" (all caps, with colon)
    - Then list the responses from best to worst as a numbered list
    - Each line should be: number, period, space, then ONLY the response label (e.g., "1. {first}")
    - Do not add any other text or explanations in the ranking section

    Now provide your evaluation and ranking:"""
)

FINALIZE_TEMPLATE = textwrap.dedent(
    """\
    You are the Chairman of an LLM Council. Multiple AI models have provided responses to a user's question{ranked}.

    Original Question: {question}

    {sections}

    Your task as Chairman is to synthesize all of this information into a single, comprehensive, accurate answer to the user's original question. Consider:
    - The individual responses and their insights
    - The peer rankings and what they reveal about response quality
    - Any patterns of agreement or disagreement

    Provide a clear, well-reasoned final answer that represents the council's collective wisdom:"""
)


def build_review_prompt(
    answers: Sequence[AnswerDocument],
    excluded_model: str | None = None,
    question: str = "",
) -> ReviewPrompt:
    kept, matched = select_answers(answers, excluded_model)
    if not kept:
        raise NoSourceDocuments("No stage-1 answers left to review after excluding the self model")
    blocks = [f"{response_label(idx)}:\n{doc.body_text}" for idx, doc in enumerate(kept)]
    text = REVIEW_TEMPLATE.format(
        question=question or "Unknown query",
        responses="\n\n".join(blocks),
        first=response_label(0),
    )
    return ReviewPrompt(text=text, included=[doc.model_id for doc in kept], excluded_model=matched)


def _answers_section(answers: Sequence[AnswerDocument]) -> str:
    ordered = sorted(answers, key=lambda doc: doc.model_id)
    return "\n\n".join(f"Model: {doc.model_id}\nResponse: {doc.body_text}" for doc in ordered)


def _reviews_section(reviews: Sequence[ReviewDocument]) -> str:
    ordered = sorted(reviews, key=lambda doc: doc.engine_id)
    return "\n\n".join(f"Reviewer: {doc.engine_id}\nRanking: {doc.body_text}" for doc in ordered)


def build_finalize_prompt(
    reviews: Sequence[ReviewDocument],
    answers: Sequence[AnswerDocument] = (),
    question: str = "",
) -> str:
    """Render the synthesis prompt.

    Reviews are the source set when present, with stage-1 answers as
    supporting context; otherwise the answers alone are the source set.
    """
    if not reviews and not answers:
        raise NoSourceDocuments("No peer reviews or stage-1 answers to synthesize")
    sections = []
    if answers:
        sections.append("STAGE 1 - Individual Responses:\n" + _answers_section(answers))
    if reviews:
        sections.append("STAGE 2 - Peer Rankings:\n" + _reviews_section(reviews))
    return FINALIZE_TEMPLATE.format(
        ranked=", and then ranked each other's responses" if reviews else "",
        question=question or "Unknown query",
        sections="\n\n".join(sections),
    )
