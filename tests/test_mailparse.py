import base64

import pytest

from mailtemp.mailparse import (
    MailParseError,
    clean_html_content,
    decode_base64_content,
    decode_email_subject,
    decode_quoted_printable,
    extract_header_field,
    extract_part_content,
    parse_multipart_mail,
)


def test_subject_base64_round_trip():
    text = "你好, welcome"
    encoded = base64.b64encode(text.encode()).decode()
    assert decode_email_subject(f"=?utf-8?B?{encoded}?=") == text


def test_subject_quoted_printable_upper():
    assert decode_email_subject("=?utf-8?Q?Hello_World?=") == "Hello World"


def test_subject_quoted_printable_lower():
    assert decode_email_subject("=?utf-8?q?a=41?=") == "aA"


def test_plain_subject_unchanged():
    assert decode_email_subject("Just a subject") == "Just a subject"


def test_invalid_base64_subject_unchanged():
    subject = "=?utf-8?B?abc?="
    assert decode_email_subject(subject) == subject


def test_qp_soft_line_breaks_removed():
    assert decode_quoted_printable("ab=\r\ncd=\nef") == "abcdef"


def test_qp_equals_sign():
    assert decode_quoted_printable("x=3Dy") == "x=y"


def test_qp_hex_escapes_become_code_points():
    assert decode_quoted_printable("=41=42") == "AB"
    assert decode_quoted_printable("=C3=A9") == "\u00c3\u00a9"


def test_qp_lowercase_hex_left_alone():
    assert decode_quoted_printable("=e4") == "=e4"


def test_clean_html_content():
    assert clean_html_content("<a href=3D=22x=22 id=3D=27y=27>=20(MISSING)") == (
        "<a href=\"x\" id='y'> "
    )


def test_extract_header_field():
    data = "From: a@example.com\r\nSubject:  Hi there \r\n\r\nbody"
    assert extract_header_field(data, "Subject") == "Hi there"
    assert extract_header_field(data, "From") == "a@example.com"


def test_extract_header_field_missing():
    assert extract_header_field("From: a@example.com\r\n", "Subject") == ""


def test_extract_part_content():
    assert extract_part_content("head\r\n\r\nbody\r\n\r\nmore") == "body\r\n\r\nmore"


def test_extract_part_content_without_separator():
    assert extract_part_content("only text") == "only text"


def test_base64_content_round_trip_with_line_breaks():
    text = "hello world, this is a longer line of text"
    encoded = base64.b64encode(text.encode()).decode()
    wrapped = encoded[:20] + "\r\n" + encoded[20:] + "\r\n"
    assert decode_base64_content(wrapped) == text


def test_base64_content_invalid_kept():
    assert decode_base64_content("abc") == "abc"


def _multipart(html):
    html_b64 = base64.b64encode(html.encode()).decode()
    return (
        "Subject: test\r\n"
        "Content-Type: multipart/alternative; boundary=XYZ\r\n"
        "\r\n"
        "--XYZ\r\n"
        "Content-Type: text/html\r\n"
        "Content-Transfer-Encoding: base64\r\n"
        "\r\n"
        f"{html_b64}\r\n"
        "--XYZ\r\n"
        "Content-Type: text/plain\r\n"
        "Content-Transfer-Encoding: quoted-printable\r\n"
        "\r\n"
        "code=3D1234\r\n"
        "--XYZ--\r\n"
    )


def test_parse_multipart_mail():
    html = "<p>Your code</p>"
    plain, html_content = parse_multipart_mail(_multipart(html))
    assert html_content == html
    assert plain.startswith("code=1234")


def test_parse_multipart_without_boundary():
    with pytest.raises(MailParseError):
        parse_multipart_mail("Content-Type: text/plain\r\n\r\nhello")