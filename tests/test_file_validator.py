from datetime import datetime, timedelta, timezone

from docsearch.core.models.upload import Severity, UploadFile
from docsearch.core.services.file_validator import FileValidator, format_file_size

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)
PDF = "application/pdf"


def _file(name="report.pdf", size=1024, content_type=PDF, last_modified=None) -> UploadFile:
    return UploadFile(name=name, data=b"x" * size, content_type=content_type,
                      last_modified=last_modified)


def test_valid_pdf():
    result = FileValidator().validate(_file(), now=NOW)

    assert result.is_valid
    assert result.severity is Severity.SUCCESS
    assert result.file_info.category == "document"
    assert result.file_info.extension == ".pdf"
    assert result.file_info.formatted_size == "1 KB"


def test_empty_and_unsupported():
    result = FileValidator().validate(_file(name="a.png", size=0, content_type="image/png"))

    assert not result.is_valid
    assert "File is empty" in result.errors
    assert any(e.startswith("Unsupported file format: image/png") for e in result.errors)


def test_type_specific_size_limit():
    big_text = _file(name="notes.txt", size=5 * 1024 * 1024 + 1, content_type="text/plain")

    result = FileValidator().validate(big_text)

    assert not result.is_valid
    assert result.errors[0].startswith("File too large: 5 MB")


def test_blocked_extension_is_critical():
    result = FileValidator().validate(_file(name="setup.exe"))

    assert not result.is_valid
    assert result.severity is Severity.CRITICAL
    assert "Potentially dangerous file extension detected" in result.security_flags


def test_null_byte_and_long_name():
    assert not FileValidator().validate(_file(name="a\0b.pdf")).is_valid
    assert not FileValidator().validate(_file(name="a" * 252 + ".pdf")).is_valid


def test_suspicious_name_is_flagged_but_valid():
    result = FileValidator().validate(_file(name="javascript:alert.pdf"), now=NOW)

    assert result.is_valid
    assert result.warnings == ["Suspicious characters in file name"]
    assert result.severity is Severity.CRITICAL


def test_extension_mismatch_warning():
    result = FileValidator().validate(_file(name="report.docx"), now=NOW)

    assert result.is_valid
    assert result.severity is Severity.WARNING
    assert "does not match MIME type" in result.warnings[0]


def test_modification_time_warnings():
    future = FileValidator().validate(_file(last_modified=NOW + timedelta(days=1)), now=NOW)
    ancient = FileValidator().validate(_file(last_modified=NOW - timedelta(days=365 * 11)), now=NOW)
    recent = FileValidator().validate(_file(last_modified=NOW - timedelta(days=30)), now=NOW)

    assert future.warnings == ["File appears to be modified in the future"]
    assert ancient.warnings == ["File was last modified a very long time ago"]
    assert recent.warnings == []


def test_options():
    validator = FileValidator(min_size=2048, allowed_categories=["spreadsheet"])

    result = validator.validate(_file())

    assert "File too small. Minimum size: 2 KB" in result.errors
    assert "File category not allowed: document" in result.errors


def test_validate_many_batch_limits():
    validator = FileValidator(max_file_count=2, max_batch_size=1500)
    files = [_file(name="a.pdf"), _file(name="b.pdf"), _file(name="c.exe")]

    batch = validator.validate_many(files, now=NOW)

    assert [f.name for f in batch.valid_files] == ["a.pdf", "b.pdf"]
    assert batch.total_size == 2048
    assert len(batch.invalid_files) == 1
    assert batch.has_security_issues
    assert batch.has_errors
    assert batch.batch_errors == [
        "Total size too large: 2 KB. Maximum: 1.46 KB",
        "Too many files selected: 3. Maximum: 2",
    ]


def test_format_file_size():
    assert format_file_size(0) == "0 Bytes"
    assert format_file_size(512) == "512 Bytes"
    assert format_file_size(1536) == "1.5 KB"
    assert format_file_size(5 * 1024 * 1024) == "5 MB"
    assert format_file_size(3 * 1024 ** 3) == "3 GB"
