"""Tests for file and directory conversion."""

import argparse

import pytest

from rgss_codec import converter
from rgss_codec.config import ConversionConfig, VersionPolicy
from rgss_codec.converter import (
    TO_DATA,
    TO_YAML,
    conversion_direction,
    convert,
    convert_dir,
    convert_list,
    is_excluded,
    main,
    most_common_extension,
    write_atomic,
)
from rgss_codec.errors import MalformedDocument
from rgss_codec.model import RubyObject, RubyString, Table
from rgss_codec.parsers import load_data
from rgss_codec.serialization import dump_data

XP = VersionPolicy.resolve('xp')


def actor_data(actor_id=1, name=b'Aluxes') -> bytes:
    actor = RubyObject('RPG::Actor', {'id': actor_id, 'name': RubyString(name)})
    return dump_data([None, actor], XP)


# ---------------------------------------------------------------------------
# Direction
# ---------------------------------------------------------------------------

@pytest.mark.parametrize('src, dest, direction', [
    ('Map001.rxdata', 'Map001.yaml', TO_YAML),
    ('Map001.rvdata2', 'Map001', TO_YAML),
    ('Map001.YAML', 'Map001.rvdata', TO_DATA),
    ('Map001', 'Map001.rxdata', TO_DATA),
])
def test_conversion_direction(src, dest, direction):
    assert conversion_direction(src, dest) == direction

@pytest.mark.parametrize('src, dest', [
    ('a.rxdata', 'b.rvdata'),
    ('a.yaml', 'b.yaml'),
    ('a.json', 'b.rxdata'),
])
def test_unsupported_direction(src, dest):
    with pytest.raises(ValueError):
        conversion_direction(src, dest)


# ---------------------------------------------------------------------------
# Single files
# ---------------------------------------------------------------------------

def test_convert_round_trip(tmp_path):
    src = tmp_path / 'Actors.rxdata'
    src.write_bytes(actor_data())

    convert(src, tmp_path / 'yaml' / 'Actors.yaml')
    text = (tmp_path / 'yaml' / 'Actors.yaml').read_text(encoding='utf-8')
    assert text.startswith('---')
    assert 'name: Aluxes' in text

    convert(tmp_path / 'yaml' / 'Actors.yaml', tmp_path / 'out' / 'Actors.rxdata')
    assert (tmp_path / 'out' / 'Actors.rxdata').read_bytes() == src.read_bytes()

def test_convert_reads_bom(tmp_path):
    src = tmp_path / 'Actors.yaml'
    src.write_bytes(b'\xef\xbb\xbf--- [1, 2]\n')
    convert(src, tmp_path / 'Actors.rxdata')
    assert load_data((tmp_path / 'Actors.rxdata').read_bytes(), XP) == [1, 2]

def test_convert_keeps_table_rows_whole_by_default(tmp_path):
    src = tmp_path / 'Map001.rxdata'
    src.write_bytes(dump_data(Table(1, 30, 1, 1, list(range(30))), XP))

    convert(src, tmp_path / 'Map001.yaml')
    lines = (tmp_path / 'Map001.yaml').read_text(encoding='utf-8').splitlines()
    assert '- ' + ' '.join(f'{i:04x}' for i in range(30)) in lines

def test_convert_missing_source(tmp_path):
    with pytest.raises(FileNotFoundError):
        convert(tmp_path / 'missing.rxdata', tmp_path / 'missing.yaml')

def test_failed_conversion_leaves_destination_alone(tmp_path):
    src = tmp_path / 'Broken.yaml'
    src.write_text('--- !ruby/nonsense 1\n')
    dest = tmp_path / 'Broken.rxdata'
    dest.write_bytes(b'previous')

    with pytest.raises(MalformedDocument):
        convert(src, dest)

    assert dest.read_bytes() == b'previous'
    assert sorted(p.name for p in tmp_path.iterdir()) == ['Broken.rxdata', 'Broken.yaml']

def test_write_atomic_cleans_up(tmp_path, monkeypatch):
    def fail(src, dest):
        raise OSError('disk full')

    monkeypatch.setattr(converter.os, 'replace', fail)
    with pytest.raises(OSError):
        write_atomic(tmp_path / 'out.yaml', b'data')
    assert list(tmp_path.iterdir()) == []

def test_write_atomic_replaces(tmp_path):
    dest = tmp_path / 'out.yaml'
    dest.write_bytes(b'old')
    write_atomic(dest, b'new')
    assert dest.read_bytes() == b'new'
    assert list(tmp_path.iterdir()) == [dest]


# ---------------------------------------------------------------------------
# Lists
# ---------------------------------------------------------------------------

def test_convert_list(tmp_path):
    srcs = []
    for i in (1, 2):
        src = tmp_path / f'Map00{i}.rxdata'
        src.write_bytes(actor_data(i))
        srcs.append(src)
    dests = [tmp_path / 'Map001.yaml', tmp_path / 'Map002.yaml']

    convert_list(srcs, dests)

    assert 'id: 2' in dests[1].read_text(encoding='utf-8')

def test_convert_list_length_mismatch(tmp_path):
    with pytest.raises(ValueError):
        convert_list([tmp_path / 'a.rxdata'], [])


# ---------------------------------------------------------------------------
# Directories
# ---------------------------------------------------------------------------

def test_most_common_extension(tmp_path):
    for name in ('a.rxdata', 'b.rxdata', 'notes.txt'):
        (tmp_path / name).write_bytes(b'')
    (tmp_path / 'sub.yaml').mkdir()
    assert most_common_extension(tmp_path) == '.rxdata'

def test_most_common_extension_without_extensions(tmp_path):
    (tmp_path / 'README').write_bytes(b'')
    with pytest.raises(ValueError):
        most_common_extension(tmp_path)

def test_is_excluded(tmp_path):
    assert is_excluded(tmp_path / 'Scripts.rxdata')
    assert is_excluded(tmp_path / 'Map001_doodads.rxdata')
    assert not is_excluded(tmp_path / 'Map001.rxdata')

def test_convert_dir(tmp_path):
    data_dir = tmp_path / 'Data'
    data_dir.mkdir()
    (data_dir / 'Actors.rxdata').write_bytes(actor_data())
    (data_dir / 'Classes.rxdata').write_bytes(dump_data([None], XP))
    (data_dir / 'Scripts.rxdata').write_bytes(b'not marshal')
    (data_dir / 'Map001_doodads.rxdata').write_bytes(b'not marshal')

    written = convert_dir(data_dir, tmp_path / 'YAML', 'yaml')

    assert [p.name for p in written] == ['Actors.yaml', 'Classes.yaml']
    assert sorted(p.name for p in (tmp_path / 'YAML').iterdir()) == ['Actors.yaml', 'Classes.yaml']

    back = convert_dir(tmp_path / 'YAML', tmp_path / 'Data2', '.rxdata')
    assert len(back) == 2
    assert (tmp_path / 'Data2' / 'Actors.rxdata').read_bytes() == actor_data()


# ---------------------------------------------------------------------------
# Command line
# ---------------------------------------------------------------------------

def test_main_single_file(tmp_path):
    src = tmp_path / 'Actors.rxdata'
    src.write_bytes(actor_data())
    dest = tmp_path / 'Actors.yaml'

    main(['-i', str(src), '-o', str(dest), '--version', 'xp', '--table-width', '8'])

    assert dest.read_text(encoding='utf-8').startswith('---')

def test_main_with_config_file(tmp_path):
    ini = tmp_path / 'rgss.ini'
    ini.write_text('[conversion]\nversion = ace\n')
    src = tmp_path / 'Actors.rvdata2'
    src.write_bytes(dump_data([None], VersionPolicy.resolve('ace')))

    main(['-i', str(src), '-o', str(tmp_path / 'Actors.yaml'), '--config', str(ini)])

    assert (tmp_path / 'Actors.yaml').exists()

def test_main_requires_a_mode():
    with pytest.raises(SystemExit) as info:
        main([])
    assert info.value.code == 2

def test_main_reports_failure(tmp_path):
    with pytest.raises(SystemExit) as info:
        main(['-i', str(tmp_path / 'missing.rxdata'), '-o', str(tmp_path / 'missing.yaml')])
    assert info.value.code == 1

def test_build_config_defaults():
    config = converter.build_config(
        argparse.Namespace(version=None, round_trip=False, table_width=None,
                           line_width=None, config=None))
    assert config == ConversionConfig()
