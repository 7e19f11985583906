from moodle_export.csv_export import (
    BOM,
    DEFAULT_EXPORT_NAME,
    NO_EXPLANATION,
    deduplicate,
    encode_csv,
    export_filename,
    finalize,
    render_back,
    render_front,
    save_csv,
)
from moodle_export.quiz_parser import QuestionRecord

ARITHMETIC = QuestionRecord(question_text="What is 2+2?", options=("3", "4"), correct_answer="4", explanation="")


def test_deduplicate_keeps_first_occurrence():
    first = QuestionRecord("Q1", ("a", "b"), "a", "first")
    repeat = QuestionRecord("Q1", ("a", "b"), "b", "second")
    other = QuestionRecord("Q2", ("a", "b"), "a", "")
    unique = deduplicate([first, other, repeat])
    assert unique == [first, other]
    assert deduplicate([]) == []


def test_render_front_and_back():
    assert render_front(ARITHMETIC) == "What is 2+2?<ol><li>3</li><li>4</li></ol>"
    assert render_back(ARITHMETIC) == f"<b>Correct Answer:</b> 4<br>{NO_EXPLANATION}"
    explained = QuestionRecord("Q", ("x",), "x", "<p>Because.</p>")
    assert render_back(explained) == "<b>Correct Answer:</b> x<br><p>Because.</p>"


def test_encode_single_row():
    text = encode_csv([ARITHMETIC])
    assert text.startswith(BOM)
    row = text[len(BOM):]
    assert row == f"What is 2+2?<ol><li>3</li><li>4</li></ol>;<b>Correct Answer:</b> 4<br>{NO_EXPLANATION}"


def test_quotes_doubled_and_field_wrapped():
    record = QuestionRecord('Who said "hello"?', ("Ann", "Bob"), "Ann", 'She said "hi" first')
    row = encode_csv([record])[len(BOM):]
    front, back = row.split('";"')
    assert front == '"Who said ""hello""?<ol><li>Ann</li><li>Bob</li></ol>'
    assert back == '<b>Correct Answer:</b> Ann<br>She said ""hi"" first"'


def test_delimiter_inside_field_is_quoted():
    record = QuestionRecord("Tom &amp; Jerry?", ("cat", "mouse"), "cat", "")
    row = encode_csv([record])[len(BOM):]
    assert row.startswith('"Tom &amp; Jerry?<ol>')
    assert row.count(";") == 2


def test_rows_joined_with_crlf():
    records = [QuestionRecord(f"Q{i}", ("a",), "a", "") for i in range(3)]
    text = encode_csv(records)
    body = text[len(BOM):]
    assert body.count("\r\n") == 2
    assert not body.endswith("\r\n")


def test_empty_export_is_bom_only():
    assert encode_csv([]) == BOM


def test_finalize_dedupes_then_encodes():
    text = finalize([ARITHMETIC, ARITHMETIC, QuestionRecord("Other", ("1",), "1", "")])
    assert text[len(BOM):].count("\r\n") == 1


def test_export_filename():
    assert export_filename("Week 3 Quiz: Attempt review") == "Week 3 Quiz Attempt review.csv"
    assert export_filename("") == f"{DEFAULT_EXPORT_NAME}.csv"
    assert export_filename(None) == f"{DEFAULT_EXPORT_NAME}.csv"
    assert export_filename("!!! ???") == f"{DEFAULT_EXPORT_NAME}.csv"
    assert export_filename("x" * 80) == "x" * 50 + ".csv"


def test_save_csv_keeps_bom_and_crlf(tmp_path):
    text = encode_csv([ARITHMETIC, QuestionRecord("Q2", ("a",), "a", "")])
    path = save_csv(text, "quiz.csv", tmp_path / "out")
    raw = path.read_bytes()
    assert raw.startswith(b"\xef\xbb\xbf")
    assert b"\r\n" in raw
    assert b"\r\r\n" not in raw
