"""Unit tests for s3_index/output_fs.py."""

from unittest.mock import MagicMock, call, patch

import pytest
from botocore.exceptions import ClientError

from s3_index.output_fs import LocalOutputFS, S3OutputFS, copy_static_files


def client_error(code="InternalError"):
    return ClientError({"Error": {"Code": code, "Message": "failure"}}, "PutObject")


class TestLocalOutputFS:
    def test_creates_root(self, tmp_path):
        root = tmp_path / "out"
        LocalOutputFS(str(root))
        assert root.is_dir()

    def test_write_text_file(self, tmp_path):
        fs = LocalOutputFS(str(tmp_path))
        fs.mkdir_all("a/b")
        with fs.open_file("a/b/index.html") as f:
            f.write("<html>é</html>")

        assert (tmp_path / "a" / "b" / "index.html").read_text(encoding="utf-8") == "<html>é</html>"

    def test_write_binary_file(self, tmp_path):
        fs = LocalOutputFS(str(tmp_path))
        with fs.open_file("logo.png", binary=True) as f:
            f.write(b"\x89PNG")

        assert (tmp_path / "logo.png").read_bytes() == b"\x89PNG"

    def test_mkdir_all_is_idempotent(self, tmp_path):
        fs = LocalOutputFS(str(tmp_path))
        fs.mkdir_all("x/y")
        fs.mkdir_all("x/y")
        fs.mkdir_all("/")
        assert (tmp_path / "x" / "y").is_dir()

    def test_sub_fs_is_rooted_at_path(self, tmp_path):
        fs = LocalOutputFS(str(tmp_path))
        fs.mkdir_all("app")
        sub = fs.sub_fs("app")
        sub.mkdir_all("1.0.0")
        with sub.sub_fs("1.0.0").open_file("index.json") as f:
            f.write("{}")

        assert (tmp_path / "app" / "1.0.0" / "index.json").read_text() == "{}"

    def test_root_sub_fs(self, tmp_path):
        fs = LocalOutputFS(str(tmp_path)).sub_fs("/")
        with fs.open_file("index.html") as f:
            f.write("root")
        assert (tmp_path / "index.html").read_text() == "root"

    def test_paths_cannot_escape_root(self, tmp_path):
        root = tmp_path / "out"
        fs = LocalOutputFS(str(root))
        with fs.open_file("../../escape.txt") as f:
            f.write("x")

        assert (root / "escape.txt").exists()
        assert not (tmp_path / "escape.txt").exists()


class TestS3OutputFS:
    def make_fs(self, **kwargs):
        client = MagicMock()
        return S3OutputFS("site-bucket", s3_client=client, **kwargs), client

    def test_upload_on_close(self):
        fs, client = self.make_fs()
        with fs.open_file("index.html") as f:
            f.write("<html></html>")

        client.put_object.assert_called_once_with(
            Bucket="site-bucket",
            Key="index.html",
            Body=b"<html></html>",
            ContentType="text/html",
            CacheControl="max-age=300",
        )

    def test_json_content_type(self):
        fs, client = self.make_fs()
        with fs.open_file("app/index.json") as f:
            f.write("{}")

        assert client.put_object.call_args.kwargs["ContentType"] == "application/json"

    def test_server_side_encryption(self):
        fs, client = self.make_fs(server_side_encryption="aws:kms")
        with fs.open_file("index.html") as f:
            f.write("x")

        kwargs = client.put_object.call_args.kwargs
        assert kwargs["ServerSideEncryption"] == "aws:kms"
        assert kwargs["BucketKeyEnabled"] is True

    def test_no_encryption_args_by_default(self):
        fs, client = self.make_fs()
        with fs.open_file("index.html") as f:
            f.write("x")

        kwargs = client.put_object.call_args.kwargs
        assert "ServerSideEncryption" not in kwargs
        assert "BucketKeyEnabled" not in kwargs

    def test_prefix_and_sub_fs(self):
        fs, client = self.make_fs(prefix="site/")
        sub = fs.sub_fs("app").sub_fs("1.0.0")
        with sub.open_file("index.html") as f:
            f.write("x")

        assert client.put_object.call_args.kwargs["Key"] == "site/app/1.0.0/index.html"
        assert sub.s3_client is client

    def test_mkdir_all_writes_nothing(self):
        fs, client = self.make_fs()
        fs.mkdir_all("a/b/c")
        client.put_object.assert_not_called()

    def test_binary_upload(self):
        fs, client = self.make_fs()
        with fs.open_file("logo.png", binary=True) as f:
            f.write(b"\x89PNG")

        kwargs = client.put_object.call_args.kwargs
        assert kwargs["Body"] == b"\x89PNG"
        assert kwargs["ContentType"] == "image/png"

    def test_nothing_uploaded_when_write_fails(self):
        fs, client = self.make_fs()
        with pytest.raises(RuntimeError):
            with fs.open_file("index.html") as f:
                f.write("partial")
                raise RuntimeError("render failed")

        client.put_object.assert_not_called()

    @patch("s3_index.output_fs.time.sleep")
    def test_upload_retries(self, mock_sleep):
        fs, client = self.make_fs()
        client.put_object.side_effect = [client_error(), None]

        fs.upload("index.html", b"x")

        assert client.put_object.call_count == 2
        mock_sleep.assert_called_once_with(1)

    @patch("s3_index.output_fs.time.sleep")
    def test_upload_gives_up(self, mock_sleep):
        fs, client = self.make_fs()
        client.put_object.side_effect = client_error("AccessDenied")

        with pytest.raises(ClientError):
            fs.upload("index.html", b"x")

        assert client.put_object.call_count == 3
        assert mock_sleep.call_args_list == [call(1), call(2)]


class TestCopyStaticFiles:
    def test_copies_tree(self, tmp_path):
        static = tmp_path / "static"
        (static / "css").mkdir(parents=True)
        (static / "favicon.ico").write_bytes(b"ico")
        (static / "css" / "site.css").write_text("body {}")

        out = tmp_path / "out"
        copied = copy_static_files(LocalOutputFS(str(out)), str(static))

        assert copied == 2
        assert (out / "favicon.ico").read_bytes() == b"ico"
        assert (out / "css" / "site.css").read_text() == "body {}"

    def test_copies_to_bucket(self, tmp_path):
        static = tmp_path / "static"
        static.mkdir()
        (static / "site.css").write_text("body {}")
        client = MagicMock()

        copy_static_files(S3OutputFS("b", prefix="www", s3_client=client), str(static))

        kwargs = client.put_object.call_args.kwargs
        assert kwargs["Key"] == "www/site.css"
        assert kwargs["Body"] == b"body {}"
        assert kwargs["ContentType"] == "text/css"

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            copy_static_files(LocalOutputFS(str(tmp_path)), str(tmp_path / "nope"))
