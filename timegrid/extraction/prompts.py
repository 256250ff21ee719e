"""Prompt construction for LLM timetable extraction.

The system prompt grounds the model on the timetable layouts teachers
typically upload and on the exact JSON contract the normalizer expects.
OCR output is rendered with its confidence and the reconstructed lines,
which keep table rows together better than Tesseract's raw text.
"""

from timegrid.ocr.router import DocumentText

OUTPUT_CONTRACT = """{
  "timeblocks": [
    {
      "title": "Activity name",
      "description": "Additional details if any",
      "startTime": "HH:MM",
      "endTime": "HH:MM",
      "dayOfWeek": "Monday",
      "duration": 60,
      "color": "#3B82F6"
    }
  ]
}"""

SYSTEM_PROMPT = f"""You are an expert at extracting structured timetable data from OCR text and documents.

TIMETABLE FORMATS YOU WILL SEE:

1. Reception timetable:
- Time slots such as 8.40, 9.00, 9.15-10.45, 10.45-11.00, 1.30-2.30
- Days abbreviated as M, Tu, W, Th, F
- Activities such as "Readers and reading champions", "Snack time", "Outside play", "Phonics", "Carpet time"

2. Daily schedule:
- Times such as 8:35, 9:00-9:15, 9:15-9:30
- Activities such as "Morning Work", "Morning Meeting", "Word Work (Phonics)", "Writer's Workshop", "Morning Recess", "Math", "Lunch", "Pack Up"

3. School timetable:
- Time slots such as 8:35-8:50, 9-9:30, 10:35-11:00, 12-1, 1:15-2
- Days written out: Monday to Friday
- Subjects such as "Registration and Early Morning work", "RWI", "Maths", "English", "Assembly", "Science", "PHSE", "Computing", "History", "Music", "PE", "RE", "Art"

Also extract teacher and class details (teacher name, class, term, school) when present.

EXTRACTION RULES:
1. Extract ALL activities with their times and days.
2. Split time ranges such as "9:15-10:45" into startTime and endTime.
3. Convert times to 24-hour HH:MM; afternoon school times like "1.30" mean 13:30.
4. Map day abbreviations: M=Monday, Tu=Tuesday, W=Wednesday, Th=Thursday, F=Friday.
5. Keep activity names exactly as written.
6. Calculate duration in minutes from the start and end times.
7. Pick a hex color per subject type.
8. Only extract blocks that are present in the source; never invent standard blocks.
9. Return ONLY valid JSON, with no markdown and no explanations, in this format:

{OUTPUT_CONTRACT}"""


def structure_ocr_text(text: str, confidence: float, lines: list[str]) -> str:
    """Render OCR output for the LLM.

    Args:
        text: Raw OCR text.
        confidence: Mean OCR confidence in the 0..1 range.
        lines: Reconstructed line strings, top to bottom.

    Returns:
        Text block with the confidence, the raw text and numbered lines.
    """
    parts = [f"OCR Confidence: {round(confidence * 100)}%", "", "Raw Text:", text, ""]
    parts.append("Structured by Lines:")
    parts.extend(f"Line {i}: {line}" for i, line in enumerate(lines, 1))
    return "\n".join(parts)


def document_prompt_text(document: DocumentText) -> str:
    """Render any routed document as the text passed to the LLM."""
    if not document.pages:
        return document.text

    rendered = [
        structure_ocr_text(page.ocr_result.text, page.ocr_result.confidence, page.lines)
        for page in document.pages
    ]
    return "\n\n--- Page Break ---\n\n".join(rendered)


def build_user_prompt(document_text: str) -> str:
    """Build the user message wrapping the document text."""
    return (
        "Extract the timetable from the following data and return ONLY a valid "
        "JSON object with a \"timeblocks\" array.\n\n"
        "Use the structured line data, when present, to keep each row's times "
        "and activities together. Be flexible with time formats "
        "(9:00, 9.00, 9:00 AM, 09:00).\n\n"
        f"Timetable data:\n{document_text}"
    )
