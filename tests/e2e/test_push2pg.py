"""
End-to-end test: the push2pg command against a real PostgreSQL.

Requires Docker (testcontainers).
"""
import psycopg
import pytest

from logpush.cli.main import main


@pytest.mark.e2e
def test_push2pg_loads_every_file(postgres_uri, accesslogs_table, write_jsonl, access_records, capsys):
    """Test three files with two workers end up in one table"""
    files = [write_jsonl(f"day{i}.jsonl", access_records(40 + i)) for i in range(3)]
    argv = ["push2pg", "--uri", postgres_uri, "--tablename", accesslogs_table, "--parallel", "2", "--batchsize", "25"]
    for path in files:
        argv += ["--filename", path]

    main(argv)

    with psycopg.connect(postgres_uri) as conn:
        assert conn.execute("SELECT count(*) FROM accesslogs").fetchone() == (123,)

    err = capsys.readouterr().err
    for path in files:
        assert f"Successfully uploaded: {path}" in err


@pytest.mark.e2e
def test_push2pg_missing_file_is_reported(postgres_uri, accesslogs_table, tmp_path, capsys):
    """Test an unreadable file does not abort the run"""
    missing = str(tmp_path / "missing.jsonl")

    main(["push2pg", "--uri", postgres_uri, "--tablename", accesslogs_table, "--filename", missing])

    assert f"Error uploading '{missing}'" in capsys.readouterr().err
