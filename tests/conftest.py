"""
Shared fixtures: packages are built in memory with zipfile.
"""

from __future__ import annotations

import io
import struct
import zipfile

import pytest

# Minimal image payloads; the parser never decodes media
JPEG_BYTES = b"\xff\xd8\xff\xe0fake-jpeg"
PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-png"
MP3_BYTES = b"ID3fake-mp3"
MP4_BYTES = b"\x00\x00\x00\x18ftypmp42fake"


SAMPLE_CONTENT_XML = """<?xml version="1.0" encoding="utf-8"?>
<package name="Sample Pack" version="4" id="pkg-1" date="2024-01-01"
         xmlns="http://vladimirkhil.com/ygpackage3.0.xsd">
  <rounds>
    <round name="Round 1">
      <themes>
        <theme name="General">
          <questions>
            <question price="100">
              <scenario>
                <atom>What is 2+2?</atom>
              </scenario>
              <right>
                <answer>4</answer>
              </right>
            </question>
            <question price="200">
              <params>
                <param name="question" type="content">
                  <item type="image" isRef="True">question.jpg</item>
                </param>
              </params>
              <right>
                <answer>Image Answer</answer>
              </right>
            </question>
          </questions>
        </theme>
      </themes>
    </round>
    <round name="Final Round" type="final">
      <themes>
        <theme name="Finale">
          <questions>
            <question price="0">
              <scenario>
                <atom>Last question</atom>
              </scenario>
              <right>
                <answer>Done</answer>
              </right>
            </question>
          </questions>
        </theme>
      </themes>
    </round>
  </rounds>
</package>
"""


def build_package(content_xml=SAMPLE_CONTENT_XML, files=None, root_name="content.xml") -> bytes:
    """Zip bytes holding content_xml plus extra entries."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        if content_xml is not None:
            zf.writestr(root_name, content_xml)
        for name, data in (files or {}).items():
            zf.writestr(name, data)
    return buffer.getvalue()


def corrupt_entry(data: bytes, name: str, length: int = 35) -> bytes:
    """Overwrite the start of an entry's compressed stream with 0xFF bytes."""
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        info = zf.getinfo(name)
    offset = info.header_offset
    name_len, extra_len = struct.unpack("<HH", data[offset + 26:offset + 30])
    start = offset + 30 + name_len + extra_len
    count = min(length, info.compress_size)
    return data[:start] + b"\xff" * count + data[start + count:]


def question_xml(body: str, price: str = "100", extra_attrs: str = "") -> str:
    """content.xml with a single question in one round and theme."""
    return f"""<?xml version="1.0" encoding="utf-8"?>
<package name="One">
  <rounds>
    <round name="R1">
      <themes>
        <theme name="T1">
          <questions>
            <question price="{price}" {extra_attrs}>
              {body}
            </question>
          </questions>
        </theme>
      </themes>
    </round>
  </rounds>
</package>
"""


@pytest.fixture
def make_package():
    return build_package


@pytest.fixture
def break_entry():
    return corrupt_entry


@pytest.fixture
def make_question_xml():
    return question_xml


@pytest.fixture
def sample_package() -> bytes:
    return build_package(files={"Images/question.jpg": JPEG_BYTES})


@pytest.fixture
def sample_package_file(tmp_path, sample_package):
    path = tmp_path / "sample.siq"
    path.write_bytes(sample_package)
    return path
