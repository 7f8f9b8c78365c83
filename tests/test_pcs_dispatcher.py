import asyncio
import os

import pytest

from pcscore.command_routing.pcs_dispatcher import CommandDispatcher


def collect(dispatcher, command, args=None, request_id="r1"):
    async def scenario():
        return [msg async for msg in dispatcher.dispatch(command, args, request_id)]
    return asyncio.run(scenario())


@pytest.fixture
def dispatcher(runner, download_dir):
    download_dir.mkdir()
    return CommandDispatcher(runner, str(download_dir))


def test_unknown_command_spawns_nothing(dispatcher, runner):
    msgs = collect(dispatcher, "frobnicate", {}, "r1")
    assert msgs == [{"type": "error", "message": "Unknown command: frobnicate", "requestId": "r1"}]
    assert runner.calls == []


def test_ls_defaults_to_root(dispatcher, runner):
    (msg,) = collect(dispatcher, "ls", {})
    assert runner.calls == [["ls", "/"]]
    assert msg["type"] == "file_list"
    assert msg["path"] == "/"
    assert msg["requestId"] == "r1"
    assert [e["path"] for e in msg["data"]] == ["/apps", "/my notes.txt"]
    assert msg["data"][0]["isDir"] is True


def test_ls_nested_path(dispatcher, runner):
    (msg,) = collect(dispatcher, "ls", {"path": "/photos"})
    assert runner.calls == [["ls", "/photos"]]
    assert msg["data"][1]["path"] == "/photos/my notes.txt"


def test_login_passes_credential_through(dispatcher, runner):
    (msg,) = collect(dispatcher, "login", {"bduss": "good-bduss"})
    assert runner.calls == [["login", "-bduss", "good-bduss"]]
    assert msg["type"] == "login_success"
    assert "tester" in msg["message"]


def test_login_without_credential_still_invokes_tool(dispatcher, runner):
    (msg,) = collect(dispatcher, "login", {})
    assert runner.calls == [["login", "-bduss", ""]]
    assert msg["type"] == "error"
    assert "BDUSS 无效" in msg["message"]


def test_process_failure_carries_stderr(dispatcher):
    (msg,) = collect(dispatcher, "rm", {"path": "/nope"}, "r9")
    assert msg["type"] == "error"
    assert msg["requestId"] == "r9"
    assert "文件或目录不存在" in msg["message"]


@pytest.mark.parametrize(
    "command, args, missing",
    [("mkdir", {}, "path"), ("rm", {"path": ""}, "path"), ("download", {}, "path"),
     ("mv", {"from": "/a"}, "to"), ("cp", {"to": "/b"}, "from")],
)
def test_missing_required_argument(dispatcher, runner, command, args, missing):
    (msg,) = collect(dispatcher, command, args)
    assert msg["type"] == "error"
    assert f"'{missing}'" in msg["message"]
    assert runner.calls == []


def test_simple_commands(dispatcher, runner):
    assert collect(dispatcher, "mkdir", {"path": "/new"})[0]["type"] == "mkdir_success"
    assert collect(dispatcher, "mv", {"from": "/a", "to": "/b"})[0]["type"] == "move_success"
    (cp,) = collect(dispatcher, "cp", {"from": "/a", "to": "/b"})
    assert cp == {"type": "copy_success", "message": "Copied", "requestId": "r1"}
    assert runner.calls == [["mkdir", "/new"], ["mv", "/a", "/b"], ["cp", "/a", "/b"]]


def test_quota(dispatcher):
    (msg,) = collect(dispatcher, "quota")
    assert msg == {
        "type": "quota_info",
        "data": {"total": "100.00GB", "used": "25.00GB", "percent": "25.00"},
        "requestId": "r1",
    }


def test_who(dispatcher):
    (msg,) = collect(dispatcher, "who")
    assert msg["data"] == {"username": "tester", "uid": "12345"}


def test_download_streams_progress_then_completes(dispatcher, runner, download_dir):
    msgs = collect(dispatcher, "download", {"path": "/movies/film.mkv"}, "d1")
    types = [m["type"] for m in msgs]

    assert types[0] == "download_start"
    assert msgs[0]["filename"] == "film.mkv"
    assert types[-1] == "download_complete"
    assert msgs[-1]["localPath"] == os.path.join(str(download_dir), "film.mkv")
    assert set(types[1:-1]) == {"download_progress"}
    assert all(m["requestId"] == "d1" for m in msgs)

    progress = [m["progress"] for m in msgs if m["type"] == "download_progress"]
    assert progress
    assert progress == sorted(progress)
    assert set(progress) <= {25, 50, 100}

    assert runner.calls == [[
        "download", "--retry", "3", "/movies/film.mkv", "--save", os.path.join(str(download_dir), "film.mkv"),
    ]]


def test_download_custom_filename(dispatcher, download_dir):
    msgs = collect(dispatcher, "download", {"path": "/a/b.bin", "filename": "renamed.bin"})
    assert msgs[0]["filename"] == "renamed.bin"
    assert msgs[-1]["localPath"] == os.path.join(str(download_dir), "renamed.bin")


def test_failed_download_has_no_complete(dispatcher):
    msgs = collect(dispatcher, "download", {"path": "/broken/file.zip"}, "d2")
    types = [m["type"] for m in msgs]
    assert types[0] == "download_start"
    assert "download_complete" not in types
    assert types[-1] == "error"
    assert "网络连接失败" in msgs[-1]["message"]
    assert msgs[-1]["requestId"] == "d2"


def test_missing_executable_becomes_error(tmp_path):
    from pcscore.command_execution.pcs_runner import PcsRunner

    dispatcher = CommandDispatcher(PcsRunner(str(tmp_path / "missing")), str(tmp_path))
    (msg,) = collect(dispatcher, "quota")
    assert msg["type"] == "error"
    assert msg["requestId"] == "r1"


def test_untagged_request_has_no_request_id(dispatcher):
    (msg,) = collect(dispatcher, "who", None, None)
    assert "requestId" not in msg


@pytest.mark.parametrize(
    "filename, saved_as",
    [("..", "film.mkv"), (".", "film.mkv"), ("sub/", "sub"), ("../../x", "x"),
     ("a/b.txt", "b.txt"), ("..\\..\\evil.bin", "evil.bin"), ("/", "film.mkv")],
)
def test_download_filename_stays_inside_download_dir(dispatcher, runner, download_dir, filename, saved_as):
    msgs = collect(dispatcher, "download", {"path": "/movies/film.mkv", "filename": filename})
    local_path = msgs[-1]["localPath"]
    save_arg = runner.calls[0][runner.calls[0].index("--save") + 1]

    assert msgs[0]["filename"] == filename
    assert save_arg == local_path == os.path.join(str(download_dir), saved_as)
    assert os.path.dirname(os.path.normpath(local_path)) == str(download_dir)


def test_download_name_falls_back_to_generic(dispatcher, download_dir):
    msgs = collect(dispatcher, "download", {"path": "/movies/..", "filename": ".."})
    assert msgs[-1]["localPath"] == os.path.join(str(download_dir), "download")


def test_unparseable_listing_is_a_parse_error(dispatcher, monkeypatch):
    def explode(text, parent):
        raise ValueError("unexpected column layout")

    monkeypatch.setattr("pcscore.command_routing.pcs_dispatcher.parse_ls_output", explode)
    msgs = collect(dispatcher, "ls", {"path": "/"}, "p1")

    assert msgs == [{
        "type": "error",
        "message": "Failed to parse file list: unexpected column layout",
        "requestId": "p1",
    }]
    assert not msgs[0]["message"].startswith("Listing files failed")


def test_download_reaps_process_when_progress_handling_fails(dispatcher, runner, monkeypatch):
    def explode(chunk):
        raise RuntimeError("bad progress line")

    monkeypatch.setattr("pcscore.command_routing.pcs_dispatcher.parse_download_progress", explode)
    msgs = collect(dispatcher, "download", {"path": "/movies/film.mkv"}, "d3")

    assert [m["type"] for m in msgs] == ["download_start", "error"]
    assert msgs[-1] == {"type": "error", "message": "bad progress line", "requestId": "d3"}
    (process,) = runner.processes
    assert process.returncode == 0
