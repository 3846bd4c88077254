import base64
import hashlib

import pytest

from portal.utils.hashing import sha256_b64, sha256_b64_file
from portal.utils.naming import object_key_for, redact_url, upload_folder_name
from portal.workflow.types import SubmissionFile


class TestChecksum:
    def test_deterministic(self):
        assert sha256_b64(b"same bytes") == sha256_b64(b"same bytes")
        assert sha256_b64(b"same bytes") != sha256_b64(b"other bytes")

    def test_matches_s3_checksum_format(self):
        digest = hashlib.sha256(b"abc").digest()
        assert sha256_b64(b"abc") == base64.b64encode(digest).decode("ascii")

    def test_file_source(self, tmp_path):
        path = tmp_path / "grades.pdf"
        path.write_bytes(b"%PDF-1.7 grades" * 2000)
        source = SubmissionFile.from_path("grades", path)
        assert source.content_type == "application/pdf"
        assert source.size_bytes == 30000
        assert sha256_b64(source.data) == sha256_b64_file(path)

    def test_unreadable_source_fails_fast(self, tmp_path):
        with pytest.raises(OSError):
            sha256_b64_file(tmp_path / "missing.pdf")
        with pytest.raises(OSError):
            SubmissionFile.from_path("grades", tmp_path / "missing.pdf")


class TestObjectKeys:
    def test_key_is_deterministic_per_owner_and_slot(self):
        a = object_key_for(12, "Amina", "El Idrissi", "report", "devoir final.pdf")
        b = object_key_for(12, "Amina", "El Idrissi", "report", "autre nom.PDF")
        assert a == b == "upload_mtym/el-idrissi_amina_12/report.pdf"

    def test_accents_are_flattened(self):
        assert upload_folder_name("Hélène", "Ouazzani Chahdi", 3) == "ouazzani-chahdi_helene_3"

    def test_homonyms_get_distinct_folders(self):
        assert upload_folder_name("Sara", "Alaoui", 1) != upload_folder_name("Sara", "Alaoui", 2)

    def test_unknown_slot(self):
        with pytest.raises(ValueError):
            object_key_for(1, "A", "B", "passport", "x.pdf")

    def test_missing_extension(self):
        assert object_key_for(1, "A", "B", "grades", "scan").endswith("/grades.bin")


class TestRedactUrl:
    def test_signature_is_dropped(self):
        url = "https://bucket.s3.amazonaws.com/upload_mtym/a_b_1/report.pdf?X-Amz-Signature=deadbeef&X-Amz-Credential=AK"
        assert redact_url(url) == "https://bucket.s3.amazonaws.com/upload_mtym/a_b_1/report.pdf"
