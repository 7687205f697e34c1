"""Tests for the resource, data source, stores, schema, config and CLI."""

import base64
import io
import json
import logging
import tempfile
from contextlib import redirect_stdout
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from nacl.public import PrivateKey, SealedBox

from sodium_item.cli import main as cli_main
from sodium_item.config import SodiumConfig, ENV_KEY_POLICY, ENV_STATE_DIR, ENV_LOG_LEVEL
from sodium_item.errors import DecodeError, InvalidKeyError, StateError
from sodium_item.keys import KeyPolicy
from sodium_item.provider import SodiumProvider
from sodium_item.resource import EncryptedItemResource, EncryptedItemDataSource
from sodium_item.schema import REDACTED, check_config, redact, required_names
from sodium_item.store import MemoryStateStore, FileStateStore


def _config(plaintext: bytes = b"the_secret", private: PrivateKey = None) -> dict:
    private = private or PrivateKey.generate()
    return {
        "public_key_base64": base64.b64encode(bytes(private.public_key)).decode(),
        "content_base64": base64.b64encode(plaintext).decode(),
    }


def test_resource_lifecycle_memory():
    """create -> read -> apply unchanged -> update changed -> delete."""
    resource = EncryptedItemResource(MemoryStateStore())
    private = PrivateKey.generate()
    config = _config(private=private)

    created = resource.create("db_password", config)
    assert created["content_base64"] == config["content_base64"]
    ciphertext = base64.b64decode(created["encrypted_value_base64"])
    assert SealedBox(private).decrypt(ciphertext) == b"the_secret"

    # read returns the stored record, no recompute
    assert resource.read("db_password") == created
    assert resource.read("db_password") == created

    # Re-applying the same config is a no-op
    record, changed = resource.apply("db_password", config)
    assert not changed
    assert record == created

    record, changed = resource.update("db_password", dict(config))
    assert not changed
    assert record["id"] == created["id"]

    # New content recomputes everything
    new_config = _config(b"rotated", private=private)
    record, changed = resource.update("db_password", new_config)
    assert changed
    assert record["id"] != created["id"]
    assert record["content_checksum"] != created["content_checksum"]
    assert resource.read("db_password") == record

    assert resource.delete("db_password")
    assert resource.read("db_password") is None
    assert not resource.delete("db_password")
    print("  [PASS] Resource lifecycle (memory store)")


def test_resource_create_twice_rejected():
    resource = EncryptedItemResource(MemoryStateStore())
    resource.create("item", _config())
    try:
        resource.create("item", _config())
        assert False, "created the same item twice"
    except ValueError:
        pass
    try:
        resource.update("missing", _config())
        assert False, "updated a missing item"
    except KeyError:
        pass
    print("  [PASS] Create twice / update missing rejected")


def test_resource_error_keeps_stored_item():
    """A bad config fails and leaves the stored record untouched."""
    resource = EncryptedItemResource(MemoryStateStore(), policy=KeyPolicy.STRICT)
    created = resource.create("item", _config())

    bad_content = dict(created, content_base64="not base64 !!")
    try:
        resource.apply("item", {
            "public_key_base64": bad_content["public_key_base64"],
            "content_base64": bad_content["content_base64"],
        })
        assert False, "applied malformed content"
    except DecodeError:
        pass

    short_key = {
        "public_key_base64": base64.b64encode(b"\x07" * 20).decode(),
        "content_base64": created["content_base64"],
    }
    try:
        resource.apply("item", short_key)
        assert False, "strict policy applied a short key"
    except InvalidKeyError:
        pass

    assert resource.read("item") == created
    print("  [PASS] Failed apply keeps stored item")


def test_resource_file_store_survives_restart():
    """A FileStateStore item reads back unchanged from a new resource."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config = _config()
        first = EncryptedItemResource(FileStateStore(tmpdir))
        created = first.create("api_token", config)

        second = EncryptedItemResource(FileStateStore(tmpdir))
        assert second.names() == ["api_token"]
        assert second.read("api_token") == created
        record, changed = second.apply("api_token", config)
        assert not changed
        assert record == created

        # Hand-edited state is caught on load
        path = Path(tmpdir) / "api_token.item.json"
        stored = json.loads(path.read_text())
        stored["id"] = "0" * 40
        path.write_text(json.dumps(stored))
        try:
            second.read("api_token")
            assert False, "read a tampered record"
        except StateError as e:
            assert "api_token" in str(e)
    print("  [PASS] File store survives restart, detects tampering")


def test_file_store_rejects_bad_names():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = FileStateStore(tmpdir)
        for name in ["", "../escape", ".hidden", "a/b"]:
            try:
                store.put(name, {})
                assert False, f"accepted name {name!r}"
            except ValueError:
                pass
        assert store.names() == []
    print("  [PASS] File store rejects bad names")


def test_import_state():
    """Import adopts a valid record only under its own id."""
    source = EncryptedItemResource(MemoryStateStore())
    record = source.create("original", _config())

    target = EncryptedItemResource(MemoryStateStore())
    try:
        target.import_state("copy", "f" * 40, record)
        assert False, "imported under the wrong id"
    except StateError:
        pass

    imported = target.import_state("copy", record["id"], record)
    assert imported == record
    assert target.read("copy") == record
    print("  [PASS] Import by id")


def test_data_source_always_fresh():
    """The data source recomputes on every read."""
    data_source = EncryptedItemDataSource()
    config = _config()
    first = data_source.read(config)
    second = data_source.read(config)
    assert first["content_checksum"] == second["content_checksum"]
    assert first["encrypted_value_base64"] != second["encrypted_value_base64"]
    assert first["id"] != second["id"]
    print("  [PASS] Data source computes fresh")


def test_schema():
    assert required_names() == ["public_key_base64", "content_base64"]
    record = EncryptedItemResource(MemoryStateStore()).create("item", _config())
    masked = redact(record)
    assert masked["content_base64"] == REDACTED
    assert masked["encrypted_value_base64"] == REDACTED
    assert masked["public_key_base64"] == record["public_key_base64"]
    assert masked["id"] == record["id"]

    try:
        check_config({"public_key_base64": "x"})
        assert False, "accepted missing content"
    except ValueError as e:
        assert "content_base64" in str(e)
    try:
        check_config(dict(_config(), id="abc"))
        assert False, "accepted a computed attribute"
    except ValueError as e:
        assert "id" in str(e)
    print("  [PASS] Schema checks + redaction")


def test_config_from_env():
    config = SodiumConfig.from_env({})
    assert config.key_policy is KeyPolicy.LENIENT
    assert config.log_level == "WARNING"

    config = SodiumConfig.from_env({
        ENV_KEY_POLICY: "Strict",
        ENV_STATE_DIR: "/tmp/items",
        ENV_LOG_LEVEL: "debug",
    })
    assert config.key_policy is KeyPolicy.STRICT
    assert config.state_dir == Path("/tmp/items")
    assert config.log_level == "DEBUG"

    for env in [{ENV_KEY_POLICY: "sometimes"}, {ENV_LOG_LEVEL: "loud"}]:
        try:
            SodiumConfig.from_env(env)
            assert False, f"accepted {env}"
        except ValueError:
            pass
    print("  [PASS] Config from environment")


def test_provider():
    with tempfile.TemporaryDirectory() as tmpdir:
        config = SodiumConfig(key_policy=KeyPolicy.STRICT, state_dir=Path(tmpdir))
        provider = SodiumProvider("1.2.3", config)
        assert provider.metadata() == {"type_name": "sodium", "version": "1.2.3"}
        assert list(provider.resources()) == ["sodium_encrypted_item"]
        assert list(provider.data_sources()) == ["sodium_encrypted_item"]

        resource = provider.resources()["sodium_encrypted_item"]()
        assert resource.policy is KeyPolicy.STRICT
        resource.create("item", _config())
        assert (Path(tmpdir) / "item.item.json").exists()
    print("  [PASS] Provider registry")


def _run_cli(argv: list[str]) -> str:
    out = io.StringIO()
    with redirect_stdout(out):
        cli_main(argv)
    return out.getvalue()


def test_cli_apply_show_destroy():
    with tempfile.TemporaryDirectory() as tmpdir:
        private = PrivateKey.generate()
        public_b64 = base64.b64encode(bytes(private.public_key)).decode()
        base = ["--state-dir", tmpdir]

        first = json.loads(_run_cli(base + ["apply", "item", "--public-key", public_b64, "--text", "the_secret"]))
        assert first["changed"]
        assert first["item"]["content_base64"] == REDACTED

        second = json.loads(_run_cli(base + ["apply", "item", "--public-key", public_b64, "--text", "the_secret"]))
        assert not second["changed"]
        assert second["item"]["id"] == first["item"]["id"]

        shown = json.loads(_run_cli(base + ["show", "item", "--show-sensitive"]))
        ciphertext = base64.b64decode(shown["encrypted_value_base64"])
        assert SealedBox(private).decrypt(ciphertext) == b"the_secret"

        assert _run_cli(base + ["list"]).split() == ["item"]

        destroyed = json.loads(_run_cli(base + ["destroy", "item"]))
        assert destroyed["removed"]

        encrypted = json.loads(_run_cli(["encrypt", "--public-key", public_b64, "--content", "dGhlX3NlY3JldA=="]))
        assert encrypted["content_checksum"] == "5135d3e5fe14d710095f0060f120e2aaf9a4911a"
    print("  [PASS] CLI apply/show/list/destroy/encrypt")


def test_cli_reports_errors():
    try:
        _run_cli(["encrypt", "--public-key", "not base64 !!", "--text", "x"])
        assert False, "CLI accepted a malformed key"
    except SystemExit as e:
        assert e.code == 1
    print("  [PASS] CLI exits 1 on bad input")


def test_file_store_rejects_undecodable_state():
    """A state file that is not UTF-8 surfaces as StateError."""
    with tempfile.TemporaryDirectory() as tmpdir:
        resource = EncryptedItemResource(FileStateStore(tmpdir))
        (Path(tmpdir) / "garbled.item.json").write_bytes(b"\xff\xfe{")
        for action in (
            lambda: resource.read("garbled"),
            lambda: resource.apply("garbled", _config()),
            lambda: resource.delete("garbled"),
        ):
            try:
                action()
                assert False, "loaded a non-UTF-8 state file"
            except StateError as e:
                assert "garbled" in str(e)

        (Path(tmpdir) / "listed.item.json").write_text("[1, 2]", encoding="utf-8")
        try:
            resource.read("listed")
            assert False, "loaded a non-object state file"
        except StateError:
            pass
    print("  [PASS] File store rejects undecodable state")


def test_import_rejects_non_object():
    """Import refuses records that are not JSON objects."""
    target = EncryptedItemResource(MemoryStateStore())
    for record in (["id"], "abc", 42, None):
        try:
            target.import_state("copy", "f" * 40, record)
            assert False, f"imported {record!r}"
        except StateError:
            pass
    assert target.names() == []
    print("  [PASS] Import rejects non-object records")


def test_cli_import_rejects_bad_record_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        state_dir = str(Path(tmpdir) / "state")
        for name, content in (("list.json", b"[1, 2, 3]"), ("str.json", b'"abc"'), ("bin.json", b"\xff\xfe")):
            path = Path(tmpdir) / name
            path.write_bytes(content)
            try:
                _run_cli(["--state-dir", state_dir, "import", "item", "f" * 40, "--record", str(path)])
                assert False, f"CLI imported {name}"
            except SystemExit as e:
                assert e.code == 1
    print("  [PASS] CLI import rejects bad record files")


def test_resource_logs_redacted():
    """Lifecycle logging never carries the content or the ciphertext."""
    messages = []

    class _Collect(logging.Handler):
        def emit(self, record):
            messages.append(record.getMessage())

    handler = _Collect(level=logging.DEBUG)
    logger = logging.getLogger("sodium_item")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    try:
        resource = EncryptedItemResource(MemoryStateStore())
        record, _ = resource.apply("item", _config(b"hunter2"))
        resource.apply("item", _config(b"hunter3"))
        EncryptedItemDataSource().read(_config(b"hunter4"))
    finally:
        logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)

    joined = "\n".join(messages)
    assert "created item" in joined and "updated item" in joined
    assert REDACTED in joined
    for secret in (b"hunter2", b"hunter3", b"hunter4"):
        assert secret.decode() not in joined
        assert base64.b64encode(secret).decode() not in joined
    assert record["encrypted_value_base64"] not in joined
    print("  [PASS] Resource logs are redacted")


def main():
    print("=" * 50)
    print("  Resource Tests")
    print("=" * 50)
    print()

    tests = [
        test_resource_lifecycle_memory,
        test_resource_create_twice_rejected,
        test_resource_error_keeps_stored_item,
        test_resource_file_store_survives_restart,
        test_file_store_rejects_bad_names,
        test_file_store_rejects_undecodable_state,
        test_import_state,
        test_import_rejects_non_object,
        test_data_source_always_fresh,
        test_schema,
        test_config_from_env,
        test_provider,
        test_cli_apply_show_destroy,
        test_cli_reports_errors,
        test_cli_import_rejects_bad_record_file,
        test_resource_logs_redacted,
    ]

    passed = 0
    failed = 0

    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"FAIL: {e}")
            import traceback
            traceback.print_exc()
            failed += 1

    print()
    print(f"Results: {passed} passed, {failed} failed")
    return failed == 0


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
