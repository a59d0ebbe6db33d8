"""Tests for segment extraction."""

import os

import pytest

from src.xgfile.errors import InvalidGameFile, NotAGameDataFormatFile
from src.xgfile.segments import (
    ArchiveSegment,
    OwnedSegment,
    SegmentKind,
    classify_entry,
)
from src.xgfile.xg_import import XGImport, extract_segments

from helpers import HEADER_SIZE, game_data


def all_entries():
    return [
        ("temp.xgi", b'I' * 300, True),
        ("temp.xg", game_data(), True),
        ("temp.xgr", b'R' * 64, False),
        ("temp.xgc", b'C' * 32, True),
        ("extra.dat", b'?' * 8, False),
    ]


class TestClassification:

    @pytest.mark.parametrize("name,kind", [
        ("temp.xgi", SegmentKind.GAME_HEADER_FILE),
        ("temp.xgr", SegmentKind.ROLLOUTS_FILE),
        ("temp.xgc", SegmentKind.COMMENTS_FILE),
        ("temp.xg", SegmentKind.GAME_DATA_FILE),
        ("C:\\Users\\x\\temp.xg", SegmentKind.GAME_DATA_FILE),
        ("temp.xgx", SegmentKind.UNKNOWN),
    ])
    def test_classify_entry(self, name, kind):
        assert classify_entry(name) is kind

    def test_extensions(self):
        assert SegmentKind.HEADER_RECORD.extension == "_gdh.bin"
        assert SegmentKind.THUMBNAIL_IMAGE.extension == ".jpg"
        assert SegmentKind.UNKNOWN.extension == ""


class TestGetFileSegments:

    def test_header_and_game_file_only(self, write_xg, config):
        importer = XGImport(str(write_xg()), config)
        segments = importer.get_file_segments()

        assert [s.kind for s in segments] == [
            SegmentKind.HEADER_RECORD,
            SegmentKind.GAME_DATA_FILE,
        ]
        assert isinstance(segments[0], OwnedSegment)
        assert isinstance(segments[1], ArchiveSegment)
        importer.release()

    def test_header_segment_preserves_original_bytes(self, write_xg, config):
        path = write_xg(game_name="Preserved")
        importer = XGImport(str(path), config)
        segments = importer.get_file_segments()

        assert segments[0].read() == path.read_bytes()[:HEADER_SIZE]
        assert importer.header.game_name == "Preserved"
        importer.release()

    def test_thumbnail_segment(self, write_xg, config):
        thumbnail = b'\xff\xd8\xff\xe0' + b'\x10' * 200
        importer = XGImport(str(write_xg(thumbnail=thumbnail)), config)
        segments = importer.get_file_segments()

        assert [s.kind for s in segments][:2] == [
            SegmentKind.HEADER_RECORD,
            SegmentKind.THUMBNAIL_IMAGE,
        ]
        assert segments[1].read() == thumbnail
        importer.release()

    def test_registry_order_and_kinds(self, write_xg, config):
        entries = all_entries()
        importer = XGImport(str(write_xg(entries)), config)
        segments = importer.get_file_segments()

        assert [s.kind for s in segments[1:]] == [
            SegmentKind.GAME_HEADER_FILE,
            SegmentKind.GAME_DATA_FILE,
            SegmentKind.ROLLOUTS_FILE,
            SegmentKind.COMMENTS_FILE,
            SegmentKind.UNKNOWN,
        ]
        for segment, (_, payload, _) in zip(segments[1:], entries):
            assert segment.read() == payload
        importer.release()

    def test_game_file_rewound_after_magic_check(self, write_xg, config):
        importer = XGImport(str(write_xg()), config)
        segments = importer.get_file_segments()
        assert segments[1].file.tell() == 0
        importer.release()

    def test_not_game_data_format(self, tmp_path, config, temp_dir):
        path = tmp_path / "notes.txt"
        path.write_bytes(b'plain text, not a game file' * 400)
        importer = XGImport(str(path), config)

        with pytest.raises(NotAGameDataFormatFile):
            importer.get_file_segments()
        assert importer.created_segments == []
        assert list(temp_dir.iterdir()) == []

    def test_invalid_game_file(self, write_xg, config, temp_dir):
        path = write_xg([("temp.xg", game_data(magic=b'XXXX'), True)])
        importer = XGImport(str(path), config)

        with pytest.raises(InvalidGameFile):
            importer.get_file_segments()

        kinds = [s.kind for s in importer.created_segments]
        assert kinds == [SegmentKind.HEADER_RECORD, SegmentKind.GAME_DATA_FILE]
        assert len(list(temp_dir.iterdir())) == 2

        importer.release()
        assert list(temp_dir.iterdir()) == []

    def test_extract_segments_cleans_up_on_failure(self, write_xg, config, temp_dir):
        path = write_xg([("temp.xg", game_data(magic=b'XXXX'), True)])
        with pytest.raises(InvalidGameFile):
            extract_segments(str(path), config)
        assert list(temp_dir.iterdir()) == []

    def test_context_manager_releases(self, write_xg, config, temp_dir):
        with XGImport(str(write_xg(all_entries())), config) as importer:
            segments = importer.get_file_segments()
            assert len(list(temp_dir.iterdir())) == len(segments)
        assert list(temp_dir.iterdir()) == []

    def test_verbose_prints_segments(self, write_xg, temp_dir, capsys):
        from src.xgfile.config import ExtractConfig

        config = ExtractConfig(temp_dir=str(temp_dir), verbose=True)
        with XGImport(str(write_xg()), config) as importer:
            segments = importer.get_file_segments()
        out = capsys.readouterr().out
        assert out.count("Extracted:") == len(segments)


class TestSegmentOwnership:

    def test_owned_segment_deletes_on_close(self, write_xg, config):
        importer = XGImport(str(write_xg()), config)
        header = importer.get_file_segments()[0]
        filename = header.filename

        header.close()
        assert header.closed
        assert not os.path.exists(filename)
        header.close()
        importer.release()

    def test_archive_segment_survives_close(self, write_xg, config):
        importer = XGImport(str(write_xg()), config)
        game = importer.get_file_segments()[1]

        game.close()
        assert os.path.exists(game.filename)
        game.remove()
        assert not os.path.exists(game.filename)
        importer.release()

    def test_release_can_keep_archive_files(self, write_xg, config):
        importer = XGImport(str(write_xg()), config)
        header, game = importer.get_file_segments()

        importer.release(remove_archive_files=False)
        assert not os.path.exists(header.filename)
        assert os.path.exists(game.filename)
        os.remove(game.filename)


class TestExport:

    def test_export_names(self, write_xg, config, tmp_path):
        out_dir = tmp_path / "out"
        importer = XGImport(str(write_xg(all_entries(), thumbnail=b'JPEG')), config)
        segments = importer.get_file_segments()

        written = importer.export(segments, str(out_dir))
        names = sorted(p.name for p in written)
        assert names == sorted([
            "match_gdh.bin",
            "match.jpg",
            "match_gamehdr.bin",
            "match_gamefile.bin",
            "match_rollouts.bin",
            "match_comments.bin",
            "match_extra.dat",
        ])
        assert (out_dir / "match.jpg").read_bytes() == b'JPEG'
        importer.release()

    def test_export_requires_directory(self, write_xg, config):
        importer = XGImport(str(write_xg()), config)
        segments = importer.get_file_segments()
        with pytest.raises(ValueError):
            importer.export(segments)
        importer.release()
