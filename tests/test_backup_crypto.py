import pytest

from tattoo_crm.domain.backup.crypto import (
    MAGIC,
    BackupFormatError,
    build_header,
    decrypt_bytes,
    decrypt_file,
    encrypt_bytes,
    encrypt_file,
    pack_header,
    unpack_header,
)

# Cheap scrypt cost for tests; the header records it
FAST = {"n": 2**10, "r": 8, "p": 1}


def test_round_trip_bytes():
    data = encrypt_bytes("correct horse", b"pg_dump payload", **FAST)
    assert data.startswith(MAGIC)
    header, _ = unpack_header(data)
    assert header["n"] == 2**10
    assert decrypt_bytes("correct horse", data) == b"pg_dump payload"


def test_wrong_password_is_rejected():
    data = encrypt_bytes("correct horse", b"secret", **FAST)
    with pytest.raises(BackupFormatError):
        decrypt_bytes("battery staple", data)


def test_tampered_ciphertext_is_rejected():
    data = bytearray(encrypt_bytes("pw-123456", b"some backup bytes", **FAST))
    data[-20] ^= 0x01
    with pytest.raises(BackupFormatError):
        decrypt_bytes("pw-123456", bytes(data))


def test_bad_magic_and_truncation():
    data = encrypt_bytes("pw-123456", b"x", **FAST)
    with pytest.raises(BackupFormatError, match="magic"):
        decrypt_bytes("pw-123456", b"NOPE!" + data[5:])
    with pytest.raises(BackupFormatError, match="truncated"):
        decrypt_bytes("pw-123456", data[:10])


def test_unsupported_header_version():
    header = build_header(b"\0" * 16, b"\0" * 12)
    header["v"] = 2
    with pytest.raises(BackupFormatError):
        unpack_header(pack_header(header) + b"\0" * 32)


def test_file_round_trip_and_cleanup(tmp_path):
    src = tmp_path / "payload.zip"
    src.write_bytes(b"zip" * 100000)
    enc = tmp_path / "payload.zip.enc"
    out = tmp_path / "restored.zip"

    encrypt_file(str(src), str(enc), "pw-123456", **FAST)
    decrypt_file(str(enc), str(out), "pw-123456")
    assert out.read_bytes() == src.read_bytes()

    bad = tmp_path / "bad.zip"
    with pytest.raises(BackupFormatError):
        decrypt_file(str(enc), str(bad), "wrong-password")
    assert not bad.exists()
