"""
Prompt templates for the AI-assisted import steps.
"""
from __future__ import annotations
import json
from typing import Dict, List

from .question_types import ALLOWED_QUESTION_TYPES


_TYPE_LIST = ", ".join(ALLOWED_QUESTION_TYPES)

READING_PROMPT = f"""
You are an expert in IELTS Academic Reading test preparation. Your task is to convert raw text from an IELTS Academic Reading test into a structured JSON format. The input text may contain multiple passages, each with questions, and possibly some instructions. Analyze the text and structure it into the following JSON schema:

{{
  "title": string, // e.g., "IELTS Academic Reading Test 1"
  "type": string, // "academic" or "general"
  "status": string, // "draft" (optional)
  "passages": [
    {{
      "passage_number": integer, // e.g., 1, 2, 3
      "title": string, // e.g., "The History of Flight"
      "body": string, // the passage text
      "section_instruction": string | null, // instructions for the section (optional)
      "status": string, // "draft" (optional)
      "questions": [
        {{
          "question_number": integer, // e.g., 1, 2, 3
          "question_type": string, // One of: {_TYPE_LIST}
          "question_text": string, // the question text (or "text")
          "instruction": string | null, // instructions for the question (optional)
          "options": string[] | null, // list of options if applicable
          "correct_answer": string | string[] | null, // correct answer(s) (or "answer")
          "status": string // "draft" (optional)
        }}
      ]
    }}
  ]
}}

- Assign appropriate question_type based on the context (e.g., "Matching Headings" if headings are listed).
- Do not include any explanatory text outside the JSON structure.
- Ensure all fields are populated where possible, leaving null or empty if data is missing.
- Use "draft" for all status fields unless specified.
""".strip()

LISTENING_SCHEMA_EXAMPLE = {
    "title": "Listening Practice Test 1",
    "audio_src": "https://example.com/audio/test1.mp3",
    "sections": [
        {
            "section_number": 1,
            "instructions": "Write ONE WORD AND/OR A NUMBER for each answer.",
            "questions": [
                {
                    "question_number": 1,
                    "question_type": "fill-blank",
                    "question_text": "The caller wants to book a ______ room.",
                    "options": None,
                    "correct_answer": "double",
                    "transcript": None,
                    "audio_url": "https://example.com/audio/test1.mp3",
                    "timestamp": 35,
                    "section": 1,
                }
            ],
        }
    ],
}

LISTENING_PROMPT = """
Given raw IELTS Listening test content, convert it to valid JSON in the following format:

{
  "title": string,
  "audio_src": string,
  "sections": [
    {
      "section_number": integer,
      "instructions": string,
      "questions": [
        {
          "question_number": integer,
          "question_type": "fill-blank" | "mcq" | "matching",
          "question_text": string,
          "options": [string] | null,
          "correct_answer": string | [string],
          "transcript": string | null,
          "audio_url": string,
          "timestamp": integer,
          "section": integer
        }
      ]
    }
  ]
}

- Use the above schema exactly: do not omit any fields or change any names.
- If a value is not available, use null for nullable fields.
- Output only valid JSON, no extra text or markdown.
""".strip()

LISTENING_PROMPT_OPTIONS: List[Dict[str, str]] = [
    {"key": "DEFAULT", "label": "Default Listening Prompt", "prompt": LISTENING_PROMPT},
    {
        "key": "TO_JSON",
        "label": "Convert to IELTS Listening JSON",
        "prompt": "Convert the following IELTS Listening content into JSON using the schema:\n\n"
        + json.dumps(LISTENING_SCHEMA_EXAMPLE, indent=2),
    },
    {
        "key": "TO_CSV",
        "label": "Convert to IELTS Listening CSV",
        "prompt": "Convert the following IELTS Listening content into a CSV matching the following columns: "
        "section_number, question_number, question_type, question_text, options, correct_answer, audio_url, timestamp.",
    },
    {
        "key": "ADDANSWER",
        "label": "Add Answer From AI",
        "prompt": "For each question in the following IELTS Listening JSON, infer the correct_answer field if missing, "
        "based on the question_text and options.",
    },
]

COMPLETION_TEMPLATE = """
{instructions}

Here is the extracted content:

{text}

Please output valid JSON only, matching whatever schema your instructions describe.
""".strip()


def build_completion_prompt(instructions: str, text: str) -> str:
    return COMPLETION_TEMPLATE.format(instructions=instructions, text=text)


def get_listening_prompt(key: str) -> str:
    """
    Returns the listening prompt for ``key``, falling back to the default one.
    """
    for option in LISTENING_PROMPT_OPTIONS:
        if option["key"] == key:
            return option["prompt"]
    return LISTENING_PROMPT
