"""Shared fixtures: Moodle-like review markup and a fake requests session."""
from unittest.mock import MagicMock

import pytest
import requests

from moodle_export.config import ExportConfig

REVIEW_URL = "https://moodle.example.edu/mod/quiz/review.php?attempt=77&cmid=12"


def question_html(prompt, options, right_answer="", feedback="", qtype="multichoice", qid=1):
    """One question block shaped like Moodle's deferred-feedback review markup."""
    letters = "abcdefgh"
    answers = "".join(
        f'<div class="r{i}"><input type="radio" name="q{qid}:answer" value="{i}">'
        f'<div class="d-flex w-auto"><span class="answernumber">{letters[i]}. </span>'
        f'<div class="flex-fill ml-1">{opt}</div></div></div>'
        for i, opt in enumerate(options)
    )
    outcome = ""
    if feedback:
        outcome += f'<div class="generalfeedback">{feedback}</div>'
    if right_answer:
        outcome += f'<div class="rightanswer">{right_answer}</div>'
    return (
        f'<div id="question-{qid}" class="que {qtype} deferredfeedback">'
        f'<div class="info"><h3 class="no">Question <span class="qno">{qid}</span></h3></div>'
        f'<div class="content"><div class="formulation clearfix">'
        f'<div class="qtext">{prompt}</div>'
        f'<div class="ablock"><div class="prompt">Select one:</div><div class="answer">{answers}</div></div>'
        f'</div><div class="outcome clearfix"><div class="feedback">{outcome}</div></div></div></div>'
    )


def review_page(*questions, title="Chapter 3 Quiz: Attempt review"):
    body = "".join(questions)
    return (
        f"<!DOCTYPE html><html><head><title>{title}</title></head>"
        f'<body><div role="main"><form>{body}</form></div></body></html>'
    )


def make_response(text="", status=200):
    response = MagicMock()
    response.status_code = status
    response.text = text
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status} Error", response=response)
    else:
        response.raise_for_status.return_value = None
    return response


def fake_http(*responses):
    """requests.Session stand-in returning responses in order (exceptions are raised)."""
    http = MagicMock(spec=requests.Session)
    http.get.side_effect = list(responses)
    return http


@pytest.fixture
def config():
    return ExportConfig.from_review_url(REVIEW_URL, embed_images=False)

