"""
Unit tests for résumé upload parsing and text cleanup.
"""
import io

import pytest
from pypdf import PdfWriter

from jobboard.parsers import FileType, ParseError, detect_file_type, parse_resume
from jobboard.pipelines.normalization import clean_text, normalize_whitespace


class TestDetectFileType:

    @pytest.mark.parametrize(
        "filename, expected",
        [
            ("resume.pdf", FileType.PDF),
            ("RESUME.PDF", FileType.PDF),
            ("resume.txt", FileType.TEXT),
            ("notes.md", FileType.TEXT),
            ("resume.docx", FileType.UNKNOWN),
        ],
    )
    def test_by_extension(self, filename, expected):
        assert detect_file_type(filename) == expected

    def test_pdf_magic_number_without_extension(self):
        assert detect_file_type("upload", b"%PDF-1.7") == FileType.PDF


class TestParseResume:

    def test_plain_text_upload(self):
        parsed = parse_resume(io.BytesIO("Senior React developer\nBerlin".encode()), "cv.txt")

        assert parsed.file_type == FileType.TEXT
        assert parsed.text == "Senior React developer\nBerlin"
        assert parsed.metadata["filename"] == "cv.txt"

    def test_unsupported_type(self):
        with pytest.raises(ParseError, match="Unsupported file type"):
            parse_resume(io.BytesIO(b"PK\x03\x04binary"), "cv.docx")

    def test_empty_text_file(self):
        with pytest.raises(ParseError, match="No text"):
            parse_resume(io.BytesIO(b"   \n  "), "cv.txt")

    def test_pdf_without_text_layer(self):
        writer = PdfWriter()
        writer.add_blank_page(width=612, height=792)
        buffer = io.BytesIO()
        writer.write(buffer)
        buffer.seek(0)

        with pytest.raises(ParseError, match="No text"):
            parse_resume(buffer, "scan.pdf")

    def test_corrupt_pdf(self):
        with pytest.raises(ParseError):
            parse_resume(io.BytesIO(b"%PDF-1.4 this is not really a pdf"), "broken.pdf")


class TestCleanText:

    def test_normalizes_smart_punctuation(self):
        assert clean_text("“Lead” – React") == '"Lead" - React'

    def test_keeps_generics_and_comparisons(self):
        text = "Skills: List<String>, Map<K, V>; salary <90k and >70k"
        assert clean_text(text) == text

    def test_keeps_paragraph_breaks(self):
        assert normalize_whitespace("Summary  \n\n\n\nSkills\tReact") == "Summary\n\nSkills React"

    @pytest.mark.parametrize("text", [None, "", "  \n "])
    def test_empty_input(self, text):
        assert clean_text(text) == ""
