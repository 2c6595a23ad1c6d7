"""Prompt construction for batch person extraction."""
from __future__ import annotations

import json
from typing import Sequence

from . import FewShotExample

__all__ = [
    "PARAGRAPH_DELIMITER",
    "RESPONSE_DATA_FIELD",
    "build_extraction_prompt",
    "build_record_template",
    "default_examples",
]

PARAGRAPH_DELIMITER = "\n---\n"
RESPONSE_DATA_FIELD = "data"

_PROMPT_TEMPLATE = """\
You are a professional historical data analyst. Below are text paragraphs introducing people.
Identify each person's name and biographical description{field_clause}.

Strict requirements:
1. Output pure JSON only.
2. If a description contains double quotes, turn them into single quotes or escape them strictly so the JSON is always valid.
3. If a paragraph is not a person introduction (it may continue the previous one), merge it into the matching person's description or ignore unrelated content.
4. The format must strictly follow:
{{
  "{data_field}": [
{record_template}
  ]
}}
{examples_section}
Text to process:
{text}"""


def build_record_template(extraction_fields: Sequence[str]) -> dict[str, str]:
    """Shape of a single record as shown to the model."""

    template = {"name": "Name", "description": "Biographical description"}
    for name in extraction_fields:
        template[name] = name
    return template


def build_extraction_prompt(
    paragraphs: Sequence[str],
    extraction_fields: Sequence[str] = (),
    examples: Sequence[FewShotExample] = (),
) -> str:
    if extraction_fields:
        field_clause = ", plus " + ", ".join(f'"{name}"' for name in extraction_fields)
    else:
        field_clause = ""

    record_json = json.dumps(build_record_template(extraction_fields), indent=2, ensure_ascii=False)
    record_template = "\n".join(f"    {line}" for line in record_json.splitlines())

    examples_section = ""
    if examples:
        rendered = "\n\n".join(f"Input: {example.input}\nOutput: {example.output}" for example in examples)
        examples_section = f"\nReference examples:\n{rendered}\n"

    return _PROMPT_TEMPLATE.format(
        field_clause=field_clause,
        data_field=RESPONSE_DATA_FIELD,
        record_template=record_template,
        examples_section=examples_section,
        text=PARAGRAPH_DELIMITER.join(paragraphs),
    )


def default_examples() -> tuple[FewShotExample, ...]:
    """Built-in few-shot examples for biographical dictionaries."""

    samples = (
        {
            "name": "Zhang Zizhong",
            "description": (
                "Zhang Zizhong (11 January 1891 - 16 May 1940), courtesy name Jinchen, "
                "was born in Linqing, Shandong. A renowned general of the War of Resistance "
                "and national hero, he served as commander of the right-wing army group of "
                "the Fifth War Zone and commander-in-chief of the 33rd Army Group."
            ),
            "birthplace": "Linqing, Shandong",
            "office": "Commander of the right-wing army group of the Fifth War Zone; commander-in-chief of the 33rd Army Group",
        },
        {
            "name": "Sun Liren",
            "description": (
                "Sun Liren (8 December 1900 - 19 November 1990), courtesy name Fumin, "
                "art name Zhongneng, was born in Lujiang County, Anhui. "
                "General, second rank, of the Republic of China Army."
            ),
            "birthplace": "Lujiang County, Anhui",
            "office": "General, second rank",
        },
    )
    return tuple(
        FewShotExample(
            input=sample["description"],
            output=json.dumps(sample, indent=2, ensure_ascii=False),
        )
        for sample in samples
    )
