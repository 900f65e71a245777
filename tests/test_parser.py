"""
Test Suite for the Package Parser Engine
========================================
Unit and integration tests for the question pipeline components.
"""

from __future__ import annotations

import json
import re
from xml.etree.ElementTree import fromstring

import pytest

from siq_parser import (
    InvalidFormatError,
    PackageError,
    ParserConfig,
    ParserEngine,
    parse_package,
)
from siq_parser.content import classify_content
from siq_parser.engine import answer_text, make_question_id, parse_score
from siq_parser.models import (
    ContentItem,
    ContentKind,
    FileStorageEntry,
    MediaBlob,
    MediaKind,
    MediaSet,
    ParseReport,
    Question,
    QuestionType,
    RoundKind,
    Slot,
    SpecialType,
)
from siq_parser.schema import (
    LegacyContent,
    ModernContent,
    NoContent,
    decode_slot,
    extract_content_items,
)
from siq_parser.special import (
    AUCTION_DESCRIPTION,
    BET_DESCRIPTION,
    SECRET_MODES,
    classify_special,
    extract_answer_options,
    is_select_question,
)
from siq_parser.validator import Diagnostics, ValidationEngine

from .conftest import JPEG_BYTES, MP3_BYTES, question_xml


def _blob(name: str, mime: str = "image/jpeg") -> MediaBlob:
    return MediaBlob(name=name, path=f"Images/{name}", mime_type=mime, data=b"x")


# ═══════════════════════════════════════════════════════════════════════════════
# MODEL TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestMediaModels:
    """Test MediaBlob, MediaSet and FileStorageEntry."""

    def test_blob_size_and_dump_excludes_data(self):
        blob = MediaBlob(name="a.png", path="Images/a.png", mime_type="image/png", data=b"1234")
        dumped = blob.model_dump()
        assert blob.size == 4
        assert dumped["size"] == 4
        assert "data" not in dumped

    def test_empty_media_set(self):
        assert MediaSet().is_empty
        assert not MediaSet(image=_blob("a.jpg")).is_empty

    def test_file_storage_entry_none_without_media(self):
        assert FileStorageEntry.from_media(MediaSet(), MediaSet()) is None

    def test_file_storage_entry_slots(self):
        image = _blob("q.jpg")
        audio = _blob("a.mp3", "audio/mpeg")
        entry = FileStorageEntry.from_media(MediaSet(image=image), MediaSet(audio=audio))
        assert entry.slots() == {"question_image": image, "answer_audio": audio}


class TestQuestionModel:
    """Test Question model."""

    def test_text_question(self):
        q = Question(id="r_c_100_0001", round="r", category="c", score=100)
        assert q.type == QuestionType.TEXT
        assert q.has_media is False
        assert q.answer_options is None

    def test_negative_score_rejected(self):
        with pytest.raises(ValueError):
            Question(id="x", round="r", category="c", score=-1)

    def test_json_serialization(self):
        q = Question(
            id="r_c_100_0001",
            round="r",
            category="c",
            score=100,
            special_type=SpecialType.BET,
            special_description=BET_DESCRIPTION,
            question_media=MediaSet(image=_blob("q.jpg")),
        )
        data = json.loads(q.model_dump_json())
        assert data["special_type"] == "bet"
        assert data["has_media"] is True
        assert data["question_media"]["image"]["name"] == "q.jpg"
        assert "data" not in data["question_media"]["image"]


# ═══════════════════════════════════════════════════════════════════════════════
# SCHEMA ADAPTER TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestSchemaAdapter:
    """Test modern/legacy content decoding."""

    def test_modern_question_and_answer(self):
        q = fromstring("""
            <question>
              <params>
                <param name="question" type="content">
                  <item>Look at this</item>
                  <item type="image">pic.png</item>
                </param>
                <param name="answer" type="content">
                  <item type="audio">tune.mp3</item>
                </param>
              </params>
            </question>""")
        shape = decode_slot(q, Slot.QUESTION)
        assert isinstance(shape, ModernContent)
        assert shape.items == [
            ContentItem(kind=ContentKind.TEXT, value="Look at this"),
            ContentItem(kind=ContentKind.IMAGE, value="pic.png"),
        ]
        assert extract_content_items(q, Slot.ANSWER) == [
            ContentItem(kind=ContentKind.AUDIO, value="tune.mp3"),
        ]

    def test_legacy_scenario_fills_question_slot_only(self):
        q = fromstring("""
            <question>
              <scenario>
                <atom>Plain text</atom>
                <atom type="voice">@song.mp3</atom>
              </scenario>
            </question>""")
        shape = decode_slot(q, Slot.QUESTION)
        assert isinstance(shape, LegacyContent)
        assert [i.kind for i in shape.items] == [ContentKind.TEXT, ContentKind.VOICE]
        assert isinstance(decode_slot(q, Slot.ANSWER), NoContent)
        assert extract_content_items(q, Slot.ANSWER) == []

    def test_modern_wins_over_scenario(self):
        q = fromstring("""
            <question>
              <params>
                <param name="question"><item>modern</item></param>
              </params>
              <scenario><atom>legacy</atom></scenario>
            </question>""")
        items = extract_content_items(q, Slot.QUESTION)
        assert [i.value for i in items] == ["modern"]

    def test_no_content(self):
        q = fromstring("<question price='100'/>")
        assert isinstance(decode_slot(q, Slot.QUESTION), NoContent)

    def test_unknown_kinds_skipped(self):
        q = fromstring("""
            <question>
              <params>
                <param name="question">
                  <item type="marker">ignored</item>
                  <item type="say">Spoken</item>
                </param>
              </params>
            </question>""")
        items = extract_content_items(q, Slot.QUESTION)
        assert items == [ContentItem(kind=ContentKind.SAY, value="Spoken")]

    def test_namespaced_document(self):
        q = fromstring("""
            <question xmlns="http://vladimirkhil.com/ygpackage3.0.xsd">
              <params>
                <param name="question"><item type="video">clip.mp4</item></param>
              </params>
            </question>""")
        items = extract_content_items(q, Slot.QUESTION)
        assert items == [ContentItem(kind=ContentKind.VIDEO, value="clip.mp4")]


# ═══════════════════════════════════════════════════════════════════════════════
# CONTENT CLASSIFIER TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestContentClassifier:
    """Test reduction of content items to a payload."""

    def _resolver(self, available=None):
        calls = []

        def resolve(reference, kind):
            calls.append((reference, kind))
            if available is None or reference in available:
                return _blob(reference.lstrip("@"))
            return None

        return resolve, calls

    def test_text_joined_with_newlines(self):
        resolve, _ = self._resolver()
        payload = classify_content(
            [
                ContentItem(kind=ContentKind.TEXT, value="Line one"),
                ContentItem(kind=ContentKind.SAY, value="Line two"),
                ContentItem(kind=ContentKind.TEXT, value="@ref.png"),
            ],
            resolve,
        )
        assert payload.type == QuestionType.TEXT
        assert payload.text == "Line one\nLine two"

    def test_no_items(self):
        resolve, calls = self._resolver()
        payload = classify_content([], resolve)
        assert payload.type == QuestionType.TEXT
        assert payload.text is None
        assert calls == []

    def test_audio_sets_type(self):
        resolve, calls = self._resolver()
        payload = classify_content(
            [ContentItem(kind=ContentKind.VOICE, value="song.mp3")], resolve
        )
        assert payload.type == QuestionType.AUDIO
        assert payload.audio is not None
        assert calls == [("song.mp3", MediaKind.AUDIO)]

    def test_unresolved_audio_still_sets_type(self):
        resolve, _ = self._resolver(available=set())
        payload = classify_content(
            [ContentItem(kind=ContentKind.AUDIO, value="missing.mp3")], resolve
        )
        assert payload.type == QuestionType.AUDIO
        assert payload.audio is None

    def test_video_outranks_audio_in_any_order(self):
        resolve, _ = self._resolver()
        audio_first = classify_content(
            [
                ContentItem(kind=ContentKind.AUDIO, value="a.mp3"),
                ContentItem(kind=ContentKind.VIDEO, value="v.mp4"),
            ],
            resolve,
        )
        video_first = classify_content(
            [
                ContentItem(kind=ContentKind.VIDEO, value="v.mp4"),
                ContentItem(kind=ContentKind.AUDIO, value="a.mp3"),
            ],
            resolve,
        )
        assert audio_first.type == QuestionType.VIDEO
        assert video_first.type == QuestionType.VIDEO
        assert video_first.audio is not None

    def test_first_resolved_image_wins(self):
        resolve, calls = self._resolver(available={"second.jpg", "third.jpg"})
        payload = classify_content(
            [
                ContentItem(kind=ContentKind.IMAGE, value="first.jpg"),
                ContentItem(kind=ContentKind.IMAGE, value="second.jpg"),
                ContentItem(kind=ContentKind.IMAGE, value="third.jpg"),
            ],
            resolve,
        )
        assert payload.image.name == "second.jpg"
        assert [ref for ref, _ in calls] == ["first.jpg", "second.jpg"]
        assert payload.type == QuestionType.TEXT


# ═══════════════════════════════════════════════════════════════════════════════
# SPECIAL TYPE TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestSpecialClassifier:
    """Test special-type markers and descriptions."""

    def test_bagcat_type_element(self):
        q = fromstring("""
            <question price="100">
              <type name="bagcat">
                <param name="theme">Cats</param>
                <param name="cost">500</param>
              </type>
            </question>""")
        info = classify_special(q)
        assert info.special_type == SpecialType.CAT
        assert "Cats" in info.description
        assert "500" in info.description

    def test_cat_type_attribute_with_question_params(self):
        q = fromstring("""
            <question price="300" type="cat">
              <params>
                <param name="theme">Cats</param>
                <param name="cost">500</param>
              </params>
            </question>""")
        info = classify_special(q)
        assert info.special_type == SpecialType.CAT
        assert info.description == "Theme: Cats, Cost: 500"

    def test_sponsored_is_bet(self):
        q = fromstring('<question><type name="sponsored"/></question>')
        info = classify_special(q)
        assert info.special_type == SpecialType.BET
        assert info.description == BET_DESCRIPTION

    @pytest.mark.parametrize("mode", ["exceptCurrent", "current", "any"])
    def test_secret_modes(self, mode):
        q = fromstring(f"""
            <question>
              <params><param name="selectionMode">{mode}</param></params>
              <type name="secret"/>
            </question>""")
        q_attr = fromstring(f"""
            <question type="secret">
              <params><param name="selectionMode">{mode}</param></params>
            </question>""")
        assert classify_special(q_attr).description == SECRET_MODES[mode]
        assert classify_special(q).special_type == SpecialType.SPECIAL

    def test_stake_is_auction(self):
        q = fromstring('<question type="stake"/>')
        info = classify_special(q)
        assert info.special_type == SpecialType.AUCTION
        assert info.description == AUCTION_DESCRIPTION

    def test_simple_and_unknown_are_ordinary(self):
        for name in ("simple", "mystery"):
            info = classify_special(fromstring(f'<question><type name="{name}"/></question>'))
            assert info.special_type is None
            assert info.description is None

    def test_no_type(self):
        assert classify_special(fromstring("<question/>")).special_type is None


class TestSelectQuestions:
    """Test answer-options extraction."""

    SELECT_XML = """
        <question price="100">
          <params>
            <param name="question" type="content"><item>Pick one</item></param>
            <param name="answerType">select</param>
            <param name="answerOptions" type="group">
              <param name="A" type="content"><item>Red</item></param>
              <param name="B">Blue</param>
              <param name="C" type="content"><item>Green</item></param>
            </param>
          </params>
          <right><answer>A</answer></right>
        </question>"""

    def test_options_in_document_order(self):
        q = fromstring(self.SELECT_XML)
        assert is_select_question(q)
        assert extract_answer_options(q) == ["A: Red", "B: Blue", "C: Green"]

    def test_not_select(self):
        q = fromstring("<question><params><param name='answerType'>text</param></params></question>")
        assert not is_select_question(q)
        assert extract_answer_options(q) == []

    def test_group_type_required(self):
        q = fromstring("""
            <question>
              <params>
                <param name="answerOptions"><param name="A">Red</param></param>
              </params>
            </question>""")
        assert extract_answer_options(q) == []


# ═══════════════════════════════════════════════════════════════════════════════
# ASSEMBLER HELPER TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestAssemblerHelpers:
    """Test score parsing, ids and answer text."""

    def test_score_attribute_priority(self):
        assert parse_score(fromstring('<question price="100" cost="200"/>')) == 100
        assert parse_score(fromstring('<question Price="150"/>')) == 150
        assert parse_score(fromstring('<question value="75"/>')) == 75

    def test_score_skips_unparsable_spelling(self):
        assert parse_score(fromstring('<question price="abc" cost="150"/>')) == 150

    def test_score_element(self):
        assert parse_score(fromstring("<question><price>250</price></question>")) == 250

    def test_score_leading_integer(self):
        assert parse_score(fromstring('<question price="300pts"/>')) == 300

    def test_negative_score_clamped(self):
        assert parse_score(fromstring('<question price="-5"/>')) == 0

    def test_missing_score(self):
        assert parse_score(fromstring("<question/>")) is None

    def test_question_id_charset(self):
        qid = make_question_id("Раунд 1", "Тема: Кино!", 100, "0001")
        assert re.fullmatch(r"[A-Za-z0-9_-]+", qid)
        assert qid == "1__100_0001"

    def test_question_id_format(self):
        assert make_question_id("Round 1", "Movies", 200, "0002") == "Round1_Movies_200_0002"

    def test_answer_text(self):
        q = fromstring("<question><right><answer> 42 </answer><answer>forty-two</answer></right></question>")
        assert answer_text(q, None) == "42"
        assert answer_text(q, "Because") == "42 (Because)"

    def test_answer_text_missing(self):
        q = fromstring("<question/>")
        assert answer_text(q, None) is None
        assert answer_text(q, "Only slot text") == "Only slot text"


# ═══════════════════════════════════════════════════════════════════════════════
# ENGINE TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestParserEngine:
    """Test the full parse pipeline."""

    def _parse(self, data: bytes, **config):
        config.setdefault("log_level", "ERROR")
        return ParserEngine(ParserConfig(**config)).parse(data)

    def test_end_to_end_sample(self, sample_package):
        contents = self._parse(sample_package)

        assert contents.info.name == "Sample Pack"
        assert contents.round_types == {
            "Round 1": RoundKind.REGULAR,
            "Final Round": RoundKind.FINAL,
        }

        round_one = contents.questions_by_round()["Round 1"]
        assert len(round_one) == 2

        first, second = round_one
        assert first.score == 100
        assert first.question_text == "What is 2+2?"
        assert first.answer_text == "4"
        assert first.has_media is False
        assert first.id not in contents.file_storage

        assert second.score == 200
        assert second.answer_text == "Image Answer"
        assert second.question_media.image.path == "Images/question.jpg"
        assert second.question_media.image.mime_type == "image/jpeg"
        entry = contents.file_storage[second.id]
        assert entry.question_image.data == JPEG_BYTES

    def test_parse_package_function(self, sample_package):
        contents = parse_package(sample_package, ParserConfig(log_level="ERROR"))
        assert len(contents.questions) == 3

    def test_round_order_follows_document(self, make_package):
        xml = """<package>
          <rounds>
            <round name="Zeta"><themes><theme name="t"><questions>
              <question price="1"><scenario><atom>z</atom></scenario></question>
            </questions></theme></themes></round>
            <round name="Alpha"><themes><theme name="t"><questions>
              <question price="1"><scenario><atom>a</atom></scenario></question>
            </questions></theme></themes></round>
          </rounds>
        </package>"""
        contents = self._parse(make_package(xml))
        assert contents.round_names() == ["Zeta", "Alpha"]
        assert [q.round for q in contents.questions] == ["Zeta", "Alpha"]

    def test_final_round_needs_literal_type(self, make_package):
        xml = """<package>
          <rounds>
            <round name="Final Round"><themes/></round>
            <round name="Last" type="final"><themes/></round>
            <round name="Other" type="Final"><themes/></round>
          </rounds>
        </package>"""
        contents = self._parse(make_package(xml))
        assert contents.round_types["Final Round"] == RoundKind.REGULAR
        assert contents.round_types["Last"] == RoundKind.FINAL
        assert contents.round_types["Other"] == RoundKind.REGULAR

    def test_unnamed_round(self, make_package):
        xml = """<package><rounds>
          <round><themes><theme name="t"><questions>
            <question price="5"><scenario><atom>x</atom></scenario></question>
          </questions></theme></themes></round>
        </rounds></package>"""
        contents = self._parse(make_package(xml))
        assert contents.round_names() == ["Round 1"]

    def test_ids_unique_and_stable(self, make_package):
        xml = """<package><rounds><round name="R"><themes><theme name="T"><questions>
          <question price="100"><scenario><atom>a</atom></scenario></question>
          <question price="100"><scenario><atom>b</atom></scenario></question>
          <question price="100"><scenario><atom>c</atom></scenario></question>
        </questions></theme></themes></round></rounds></package>"""
        data = make_package(xml)
        first = [q.id for q in self._parse(data).questions]
        second = [q.id for q in self._parse(data).questions]
        assert len(set(first)) == 3
        assert first == second
        assert first[0] == "R_T_100_0001"

    def test_random_ids_unique(self, make_package):
        xml = """<package><rounds><round name="R"><themes><theme name="T"><questions>
          <question price="100"/><question price="100"/><question price="100"/>
        </questions></theme></themes></round></rounds></package>"""
        ids = [q.id for q in self._parse(make_package(xml), stable_ids=False).questions]
        assert len(set(ids)) == 3
        for qid in ids:
            assert re.fullmatch(r"R_T_100_[0-9a-f]{5}", qid)

    def test_bagcat_end_to_end(self, make_package):
        xml = question_xml(
            """<params>
                 <param name="theme">Cats</param>
                 <param name="cost">500</param>
               </params>
               <scenario><atom>Cat question</atom></scenario>
               <right><answer>Meow</answer></right>""",
            price="300",
            extra_attrs='type="cat"',
        )
        question = self._parse(make_package(xml)).questions[0]
        assert question.score == 300
        assert question.special_type == SpecialType.CAT
        assert "Cats" in question.special_description
        assert "500" in question.special_description
        assert question.question_text == "Cat question"

    def test_select_end_to_end(self, make_package):
        xml = question_xml(
            """<params>
                 <param name="question"><item>Pick one</item></param>
                 <param name="answerType">select</param>
                 <param name="answerOptions" type="group">
                   <param name="A"><item>Red</item></param>
                   <param name="B"><item>Blue</item></param>
                 </param>
               </params>
               <right><answer>A</answer></right>"""
        )
        question = self._parse(make_package(xml)).questions[0]
        assert question.type == QuestionType.SELECT
        assert question.answer_options == ["A: Red", "B: Blue"]
        assert question.answer_text == "A"

    def test_answer_slot_text_appended(self, make_package):
        xml = question_xml(
            """<params>
                 <param name="question"><item>Why?</item></param>
                 <param name="answer"><item>Because</item></param>
               </params>
               <right><answer>X</answer></right>"""
        )
        question = self._parse(make_package(xml)).questions[0]
        assert question.answer_text == "X (Because)"

    def test_answer_media(self, make_package):
        xml = question_xml(
            """<params>
                 <param name="question"><item>Name the tune</item></param>
                 <param name="answer"><item type="audio">tune.mp3</item></param>
               </params>"""
        )
        contents = self._parse(make_package(xml, files={"Audio/tune.mp3": MP3_BYTES}))
        question = contents.questions[0]
        assert question.type == QuestionType.TEXT
        assert question.answer_media.audio.mime_type == "audio/mpeg"
        assert contents.file_storage[question.id].answer_audio.data == MP3_BYTES

    def test_missing_media_reported(self, make_package):
        xml = question_xml(
            '<params><param name="question"><item type="image">nowhere.png</item></param></params>'
        )
        contents = self._parse(make_package(xml))
        question = contents.questions[0]
        assert question.has_media is False
        assert contents.file_storage == {}
        assert contents.report.media_miss_count == 1
        miss = contents.report.media_misses[0]
        assert miss.question_id == question.id
        assert miss.reference == "nowhere.png"
        assert miss.slot == Slot.QUESTION

    def test_report_records_irregularities(self, make_package):
        xml = question_xml("", price="n/a")
        contents = self._parse(make_package(xml))
        question = contents.questions[0]
        assert question.score == 0
        assert contents.report.malformed_scores == [question.id]
        assert contents.report.empty_slots == [question.id]

    def test_workers_preserve_order(self, make_package):
        questions = "".join(
            f'<question price="{i * 100}">'
            f'<params><param name="question"><item type="image">img{i}.png</item></param></params>'
            f"</question>"
            for i in range(1, 13)
        )
        xml = f"""<package><rounds><round name="R"><themes><theme name="T"><questions>
          {questions}
        </questions></theme></themes></round></rounds></package>"""
        files = {f"Images/img{i}.png": f"png-{i}".encode() for i in range(1, 13)}
        data = make_package(xml, files=files)

        sequential = self._parse(data, max_workers=1)
        threaded = self._parse(data, max_workers=4)

        assert [q.id for q in threaded.questions] == [q.id for q in sequential.questions]
        assert [q.score for q in threaded.questions] == [i * 100 for i in range(1, 13)]
        for q in threaded.questions:
            assert threaded.file_storage[q.id].question_image.data == (
                f"png-{q.score // 100}".encode()
            )

    def test_progress_callback(self, sample_package):
        progress = []
        ParserEngine(ParserConfig(log_level="ERROR")).parse(
            sample_package, progress_callback=lambda done, total: progress.append((done, total))
        )
        assert progress == [(1, 3), (2, 3), (3, 3)]

    def test_parse_file_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ParserEngine(ParserConfig(log_level="ERROR")).parse_file(str(tmp_path / "nope.siq"))


class TestInvalidPackages:
    """Only a missing or unreadable root document is fatal."""

    def _parse(self, data: bytes):
        return ParserEngine(ParserConfig(log_level="ERROR")).parse(data)

    def test_not_a_zip(self):
        with pytest.raises(InvalidFormatError):
            self._parse(b"definitely not a zip archive")

    def test_missing_content_xml(self, make_package):
        data = make_package(content_xml=None, files={"Images/a.png": b"x"})
        with pytest.raises(InvalidFormatError, match="content.xml"):
            self._parse(data)

    def test_empty_content_xml(self, make_package):
        with pytest.raises(InvalidFormatError):
            self._parse(make_package(content_xml=""))

    def test_unparsable_content_xml(self, make_package):
        with pytest.raises(InvalidFormatError):
            self._parse(make_package(content_xml="<package><rounds>"))

    def test_root_document_case_insensitive(self, make_package):
        data = make_package(root_name="Content.XML")
        contents = self._parse(data)
        assert len(contents.questions) == 3

    def test_package_without_rounds(self, make_package):
        contents = self._parse(make_package(content_xml="<package name='empty'/>"))
        assert contents.questions == []
        assert contents.round_types == {}

    def test_corrupt_content_xml_stream(self, sample_package, break_entry):
        data = break_entry(sample_package, "content.xml")
        with pytest.raises(PackageError):
            parse_package(data, ParserConfig(log_level="ERROR"))

    def test_corrupt_content_types_not_fatal(self, make_package, break_entry):
        types_xml = (
            '<Types><Default Extension="jpg" ContentType="image/jpeg" /></Types>'
        )
        data = make_package(
            files={"Images/question.jpg": JPEG_BYTES, "[Content_Types].xml": types_xml}
        )
        contents = self._parse(break_entry(data, "[Content_Types].xml"))
        assert len(contents.questions) == 3
        image = contents.questions[1].question_media.image
        assert image.mime_type == "image/jpeg"

    def test_corrupt_media_entry_is_a_miss(self, sample_package, break_entry):
        contents = self._parse(break_entry(sample_package, "Images/question.jpg"))
        assert len(contents.questions) == 3
        question = contents.questions[1]
        assert question.question_media.image is None
        assert question.id not in contents.file_storage
        assert [m.reference for m in contents.report.media_misses] == ["question.jpg"]


# ═══════════════════════════════════════════════════════════════════════════════
# VALIDATION ENGINE TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestValidationEngine:
    """Test ParseReport generation."""

    def test_empty_questions(self):
        report = ValidationEngine().validate([], Diagnostics())
        assert isinstance(report, ParseReport)
        assert report.question_count == 0
        assert report.media_miss_count == 0

    def test_breakdowns(self):
        questions = [
            Question(id="a", round="r", category="c", score=1),
            Question(id="b", round="r", category="c", score=2, type=QuestionType.AUDIO),
            Question(
                id="c", round="r", category="c", score=3,
                special_type=SpecialType.CAT, special_description="Theme: x, Cost: 1",
                question_media=MediaSet(image=_blob("i.jpg")),
            ),
        ]
        report = ValidationEngine().validate(questions, Diagnostics(), round_count=1, theme_count=1)
        assert report.question_count == 3
        assert report.questions_with_media == 1
        assert report.type_breakdown == {"text": 2, "audio": 1}
        assert report.special_questions == {"cat": 1}

    def test_records_sorted_by_position(self):
        diagnostics = Diagnostics()
        diagnostics.media_miss(3, "q3", Slot.ANSWER, "c.mp3", MediaKind.AUDIO)
        diagnostics.media_miss(1, "q1", Slot.QUESTION, "a.png", MediaKind.IMAGES)
        diagnostics.empty_slot(2, "q2")
        diagnostics.empty_slot(1, "q1")
        report = ValidationEngine().validate([], diagnostics)
        assert [m.question_id for m in report.media_misses] == ["q1", "q3"]
        assert report.empty_slots == ["q1", "q2"]
