"""
Export functions for generated exams.

Supports plain text (per view or the full document, used for the clipboard
and the .txt download) and Word (.docx). Paper and PDF output go through the
browser's print dialog on the print page, so there is no PDF writer here.
"""

import io
import re
from typing import List, Optional

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH

from toetsgen.exam_models import GeneratedExam
from toetsgen.presentation import VIEW_ANALYSIS, VIEW_ANSWERS, VIEW_IDS, VIEW_MATRIX, VIEW_TEST

SECTION_TITLES = {
    VIEW_TEST: "TOETS",
    VIEW_ANSWERS: "ANTWOORDMODEL",
    VIEW_MATRIX: "TOETSMATRIJS",
    VIEW_ANALYSIS: "TOETSANALYSE",
}
GOALS_TITLE = "DEKKING LEERDOELEN"
ANALYSIS_TEMPLATE_ROWS = 5
MAX_FILENAME_STEM = 80


def _heading(title: str) -> List[str]:
    return [title, "=" * len(title)]


def _answer_number(exam: GeneratedExam, question_id: int, index: int) -> int:
    number = exam.question_number(question_id)
    return number if number is not None else index + 1


def _label_for(exam: GeneratedExam, question_id: int) -> str:
    question = exam.question_by_id(question_id)
    return question.taxonomy_label if question else "-"


def _header_lines(exam: GeneratedExam) -> List[str]:
    lines = [exam.title]
    if exam.introduction:
        lines.append(exam.introduction)
    return lines


def _test_lines(exam: GeneratedExam) -> List[str]:
    lines = _heading(SECTION_TITLES[VIEW_TEST])
    for index, question in enumerate(exam.questions):
        lines.append("")
        lines.append(f"Vraag {index + 1} ({question.points} pt) [{question.taxonomy_label}]")
        lines.append(question.text)
        if question.type == "Multiple Choice" and question.options:
            for option in question.options:
                lines.append(f"   {option}")
    return lines


def _answer_lines(exam: GeneratedExam) -> List[str]:
    lines = _heading(SECTION_TITLES[VIEW_ANSWERS])
    for index, item in enumerate(exam.answers):
        lines.append("")
        lines.append(f"{_answer_number(exam, item.question_id, index)}. {item.answer}")
        if item.criteria:
            lines.append(f"   Criteria: {item.criteria}")
        lines.append(f"   {_label_for(exam, item.question_id)}: {item.explanation}")
    return lines


def _matrix_lines(exam: GeneratedExam) -> List[str]:
    labels = exam.labels
    lines = _heading(SECTION_TITLES[VIEW_MATRIX])
    lines.append("")
    lines.append(" | ".join(["Onderwerp"] + labels + ["Totaal"]))
    for row in exam.matrix:
        cells = [row.topic] + [str(row.counts.get(label, 0)) for label in labels]
        cells.append(str(exam.row_total(row)))
        lines.append(" | ".join(cells))

    lines.append("")
    lines.extend(_heading(GOALS_TITLE))
    lines.append("")
    for mapping in exam.goal_mapping:
        numbers = []
        for question_id in mapping.question_ids:
            number = exam.question_number(question_id)
            numbers.append(f"Vraag {number if number is not None else '?'}")
        lines.append(f"- {mapping.goal}: {', '.join(numbers)}")
    return lines


def _analysis_columns(exam: GeneratedExam) -> List[str]:
    return ["Naam Student"] + [f"{label} Score %" for label in exam.labels] + ["Cijfer", "Opmerkingen / Actiepunten"]


def _analysis_lines(exam: GeneratedExam) -> List[str]:
    lines = _heading(SECTION_TITLES[VIEW_ANALYSIS])
    lines.append("")
    lines.append(exam.analysis_instructions)
    lines.append("")
    lines.append("Sjabloon voor cijferanalyse:")
    lines.append(" | ".join(_analysis_columns(exam)))
    return lines


_SECTION_BUILDERS = {
    VIEW_TEST: _test_lines,
    VIEW_ANSWERS: _answer_lines,
    VIEW_MATRIX: _matrix_lines,
    VIEW_ANALYSIS: _analysis_lines,
}


def export_text(exam: GeneratedExam, view: Optional[str] = None) -> str:
    """Serialize an exam, or one view of it, to plain text.

    The output is deterministic: sections always appear in the order
    header, test, answer key, matrix and goals, analysis.

    Args:
        exam: The generated exam.
        view: One of the view ids to export only that section (the student
            test also gets the header), or None for the full document.

    Returns:
        The text, ending with a newline.
    """
    if view is not None and view not in _SECTION_BUILDERS:
        raise ValueError(f"Unknown view: {view}")

    blocks = []
    if view is None or view == VIEW_TEST:
        blocks.append(_header_lines(exam))
    views = VIEW_IDS if view is None else [view]
    for view_id in views:
        blocks.append(_SECTION_BUILDERS[view_id](exam))

    return "\n\n".join("\n".join(block) for block in blocks) + "\n"


def export_docx(exam: GeneratedExam) -> io.BytesIO:
    """Export the full exam document to a Word file.

    Returns:
        BytesIO buffer containing the .docx file.
    """
    doc = Document()

    title = doc.add_heading(exam.title or "Toets", level=1)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER
    if exam.introduction:
        doc.add_paragraph().add_run(exam.introduction).italic = True

    doc.add_paragraph("Naam: ____________________________  Klas: ____________")

    doc.add_heading("Toets", level=2)
    for index, question in enumerate(exam.questions):
        para = doc.add_paragraph()
        para.add_run(f"{index + 1}. ").bold = True
        para.add_run(question.text)
        para.add_run(f"  ({question.points} pt)").italic = True
        if question.type == "Multiple Choice" and question.options:
            for option in question.options:
                doc.add_paragraph(option, style="List Bullet")
        elif question.type == "Open":
            doc.add_paragraph("_" * 60)

    doc.add_page_break()
    doc.add_heading("Antwoordmodel", level=2)
    table = doc.add_table(rows=1, cols=4)
    table.style = "Table Grid"
    for cell, text in zip(table.rows[0].cells, ["Nr.", "Antwoord & Criteria", exam.taxonomy, "Toelichting"]):
        cell.text = text
    for index, item in enumerate(exam.answers):
        cells = table.add_row().cells
        cells[0].text = str(_answer_number(exam, item.question_id, index))
        cells[1].text = item.answer + (f"\nCriteria: {item.criteria}" if item.criteria else "")
        cells[2].text = _label_for(exam, item.question_id)
        cells[3].text = item.explanation

    doc.add_heading("Toetsmatrijs", level=2)
    labels = exam.labels
    table = doc.add_table(rows=1, cols=len(labels) + 2)
    table.style = "Table Grid"
    for cell, text in zip(table.rows[0].cells, ["Onderwerp"] + labels + ["Totaal"]):
        cell.text = text
    for row in exam.matrix:
        cells = table.add_row().cells
        cells[0].text = row.topic
        for offset, label in enumerate(labels):
            cells[offset + 1].text = str(row.counts.get(label, 0))
        cells[-1].text = str(exam.row_total(row))

    doc.add_heading("Dekking leerdoelen", level=2)
    for mapping in exam.goal_mapping:
        numbers = [str(exam.question_number(qid) or "?") for qid in mapping.question_ids]
        doc.add_paragraph(f"{mapping.goal}: vraag {', '.join(numbers)}", style="List Bullet")

    doc.add_heading("Toetsanalyse", level=2)
    doc.add_paragraph(exam.analysis_instructions)
    columns = _analysis_columns(exam)
    table = doc.add_table(rows=1 + ANALYSIS_TEMPLATE_ROWS, cols=len(columns))
    table.style = "Table Grid"
    for cell, text in zip(table.rows[0].cells, columns):
        cell.text = text

    buf = io.BytesIO()
    doc.save(buf)
    buf.seek(0)
    return buf


def download_name(title: str, extension: str, view: Optional[str] = None) -> str:
    """Attachment filename for an exported exam.

    Only word characters, spaces and dashes survive; spaces become
    underscores and the stem is cut to 80 characters (``toets`` when
    nothing is left). A single-view text export gets the view id appended,
    e.g. ``Proeftoets_Cellen_answers.txt``.
    """
    stem = re.sub(r"[^\w\s\-]", "", title or "")
    stem = re.sub(r"\s+", "_", stem.strip())[:MAX_FILENAME_STEM] or "toets"
    suffix = f"_{view}" if view else ""
    return f"{stem}{suffix}.{extension}"
