import os
import re
import tempfile
import unittest
from unittest import mock

from googleapiclient.errors import HttpError

from http_fakes import fake_session, make_response, make_settings, sent_params
from workspace_api.google.client import GoogleClient
from workspace_api.google.drive import (
    FOLDER_LIST_FIELDS,
    FOLDER_MIME_TYPE,
    SHORTCUT_MIME_TYPE,
    DriveFileQuery,
    folder_query,
)
from workspace_api.utils.errors import ConfigurationError, HTTPStatusError

FILES_URL = "https://www.googleapis.com/drive/v3/files"

# folder id -> pages of children
TREE = {
    "root": [
        [{"id": "f1", "name": "Projects", "mimeType": FOLDER_MIME_TYPE}],
        [{"id": "a", "name": "notes.txt", "mimeType": "text/plain", "md5Checksum": "x"}],
    ],
    "f1": [
        [
            {"id": "f2", "name": "Alpha", "mimeType": FOLDER_MIME_TYPE},
            {"id": "b", "name": "plan", "mimeType": "application/vnd.google-apps.document"},
        ]
    ],
    "f2": [[{"id": "c", "name": "spec.pdf", "mimeType": "application/pdf", "md5Checksum": "y"}]],
}


def tree_handler(method, url, params, body):
    folder_id = re.match(r"'([^']+)' in parents", params["q"]).group(1)
    pages = TREE.get(folder_id, [[]])
    index = int(params.get("pageToken", 0))
    payload = {"files": pages[index]}
    if index + 1 < len(pages):
        payload["nextPageToken"] = str(index + 1)
    return make_response(200, payload)


def make_client(*responses, handler=None, **settings):
    session = fake_session(*responses, handler=handler)
    client = GoogleClient(settings=make_settings(**settings), auth=mock.Mock(), session=session)
    return client, session


class TestFolderQuery(unittest.TestCase):
    def test_default_listing(self):
        params = folder_query("abc").to_params()
        self.assertEqual(params["q"], "'abc' in parents and trashed = false")
        self.assertEqual(params["fields"], FOLDER_LIST_FIELDS)
        self.assertEqual(params["pageSize"], 1000)

    def test_custom_query_is_validated(self):
        params = folder_query("abc", DriveFileQuery(order_by="name")).to_params()
        self.assertEqual(params["corpora"], "user")
        self.assertEqual(params["fields"], "*")
        self.assertEqual(params["pageSize"], 100)
        self.assertEqual(params["q"], "'abc' in parents and trashed = false")

    def test_empty_query_only_sets_fields(self):
        self.assertEqual(DriveFileQuery().validate_query().to_params(), {"fields": "*"})


class TestListFiles(unittest.TestCase):
    def test_recursive_listing_with_paths(self):
        client, session = make_client(handler=tree_handler, MAX_WORKERS=2)

        result = client.drive.list_root()

        paths = sorted(f["path"] for f in result["files"])
        self.assertEqual(
            paths,
            ["/Projects", "/Projects/Alpha", "/Projects/Alpha/spec.pdf", "/Projects/plan", "/notes.txt"],
        )
        # root has two pages, f1 and f2 one each
        self.assertEqual(session.request.call_count, 4)

    def test_listing_below_a_folder_resolves_its_path(self):
        def handler(method, url, params, body):
            if url == f"{FILES_URL}/f1":
                return make_response(200, {"id": "f1", "name": "Projects", "parents": ["root-id"]})
            if url == f"{FILES_URL}/root-id":
                return make_response(200, {"id": "root-id", "name": "My Drive"})
            return tree_handler(method, url, params, body)

        client, _ = make_client(handler=handler)

        result = client.drive.list_files({"id": "f1"})

        self.assertIn("/My Drive/Projects/Alpha/spec.pdf", [f["path"] for f in result["files"]])

    def test_errors_propagate(self):
        client, _ = make_client(make_response(404, {"error": {"message": "File not found: f9"}}))
        with self.assertRaises(HTTPStatusError):
            client.drive.list_files({"id": "f9", "path": "/x/"})


class TestFileOperations(unittest.TestCase):
    def test_get_file_path_shared_with_me(self):
        client, _ = make_client(make_response(200, {"id": "s", "name": "Shared doc", "shared": True}))
        self.assertEqual(client.drive.get_file_path("s"), "/Shared with me/Shared doc")

    def test_move_file(self):
        client, session = make_client(make_response(200, {"id": "a", "parents": ["dest"]}))
        client.drive.move_file({"id": "a", "parents": ["src"]}, {"id": "dest"})
        call = session.request.call_args
        self.assertEqual(call.args, ("PATCH", f"{FILES_URL}/a"))
        self.assertEqual(
            sent_params(session), {"addParents": "dest", "removeParents": "src", "fields": "id,name,parents"}
        )

    def test_transfer_ownership(self):
        client, session = make_client(make_response(200, {"id": "perm"}))
        client.drive.transfer_ownership("a", "new@acme.com")
        call = session.request.call_args
        self.assertEqual(call.args, ("POST", f"{FILES_URL}/a/permissions"))
        self.assertEqual(sent_params(session), {"transferOwnership": "true"})
        self.assertEqual(call.kwargs["json"], {"emailAddress": "new@acme.com", "role": "owner", "type": "user"})

    def test_list_permissions(self):
        client, _ = make_client(
            make_response(200, {"permissions": [{"id": "1"}], "nextPageToken": "t"}),
            make_response(200, {"permissions": [{"id": "2"}]}),
        )
        self.assertEqual(len(client.drive.list_permissions("a")["permissions"]), 2)


class FakeDownloader:
    def __init__(self, fd, request):
        fd.write(request.content)

    def next_chunk(self):
        return None, True


class TestDownload(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.client, _ = make_client(make_response(200, {"id": "t", "name": "Target"}))
        self.service = mock.MagicMock()
        self.service.files.return_value.get_media.side_effect = lambda fileId: mock.Mock(content=b"binary")
        self.service.files.return_value.export_media.side_effect = lambda fileId, mimeType: mock.Mock(
            content=mimeType.encode()
        )
        for target, value in (
            ("workspace_api.google.drive.build", mock.Mock(return_value=self.service)),
            ("workspace_api.google.drive.MediaIoBaseDownload", FakeDownloader),
        ):
            patcher = mock.patch(target, value)
            patcher.start()
            self.addCleanup(patcher.stop)

    def read(self, path):
        with open(path, "rb") as f:
            return f.read()

    def test_binary_file(self):
        path = self.client.drive.download_file(
            {"id": "a", "name": "notes.txt", "path": "/Docs/notes.txt", "md5Checksum": "x"}, self.tmp.name
        )
        self.assertEqual(path, os.path.join(self.tmp.name, "Docs", "notes.txt"))
        self.assertEqual(self.read(path), b"binary")

    def test_native_file_is_exported(self):
        path = self.client.drive.download_file(
            {"id": "b", "name": "plan", "path": "/plan", "mimeType": "application/vnd.google-apps.document"},
            self.tmp.name,
        )
        self.assertTrue(path.endswith("plan.docx"))
        self.assertIn(b"wordprocessingml", self.read(path))

    def test_duplicate_names_get_a_suffix(self):
        file = {"id": "abcdef123", "name": "a.txt", "path": "/a.txt", "md5Checksum": "x"}
        first = self.client.drive.download_file(file, self.tmp.name)
        second = self.client.drive.download_file(file, self.tmp.name)
        self.assertNotEqual(first, second)
        self.assertEqual(os.path.basename(second), "a_abcde_1.txt")

    def test_shortcut(self):
        path = self.client.drive.download_file(
            {
                "id": "s",
                "name": "link",
                "path": "/link",
                "mimeType": SHORTCUT_MIME_TYPE,
                "shortcutDetails": {"targetId": "t"},
            },
            self.tmp.name,
        )
        self.assertTrue(path.endswith("link.lnk.txt"))
        self.assertEqual(self.read(path), b"/Target")

    def test_folders_and_unknown_types_are_skipped(self):
        drive = self.client.drive
        self.assertIsNone(drive.download_file({"id": "f", "name": "f", "mimeType": FOLDER_MIME_TYPE}, self.tmp.name))
        self.assertIsNone(
            drive.download_file({"id": "m", "name": "m", "mimeType": "application/vnd.google-apps.map"}, self.tmp.name)
        )

    def test_failures_are_recorded(self):
        errors = {
            "d1": HttpError(
                mock.Mock(status=403, reason="Forbidden"),
                b'{"error": {"code": 403, "message": "This file cannot be downloaded by the user."}}',
            ),
            "d2": HttpError(
                mock.Mock(status=500, reason="Backend Error"),
                b'{"error": {"code": 500, "message": "Backend Error"}}',
            ),
        }

        def get_media(fileId):
            raise errors[fileId]

        self.service.files.return_value.get_media.side_effect = get_media
        files = [
            {"id": "d1", "name": "secret.bin", "md5Checksum": "x"},
            {"id": "d2", "name": "broken.bin", "md5Checksum": "y"},
        ]

        results = self.client.drive.download_files(files, self.tmp.name)

        self.assertEqual(results, [None, None])
        with open(os.path.join(self.tmp.name, "permission_errors.txt")) as f:
            self.assertIn("secret.bin", f.read())
        with open(os.path.join(self.tmp.name, "errors.txt")) as f:
            self.assertIn("broken.bin", f.read())

    def test_missing_shortcut_target_does_not_abort_batch(self):
        client, _ = make_client(make_response(404, {"error": {"message": "File not found: gone"}}))
        files = [
            {
                "id": "s",
                "name": "link",
                "path": "/link",
                "mimeType": SHORTCUT_MIME_TYPE,
                "shortcutDetails": {"targetId": "gone"},
            },
            {"id": "a", "name": "a.bin", "path": "/a.bin", "md5Checksum": "x"},
        ]

        results = client.drive.download_files(files, self.tmp.name)

        self.assertIsNone(results[0])
        self.assertEqual(self.read(results[1]), b"binary")
        with open(os.path.join(self.tmp.name, "errors.txt")) as f:
            errors = f.read()
        self.assertIn("link", errors)
        self.assertIn("File not found: gone", errors)

    def test_paths_are_released_after_download(self):
        drive = self.client.drive
        drive.download_file({"id": "a", "name": "a.txt", "path": "/a.txt", "md5Checksum": "x"}, self.tmp.name)
        self.assertEqual(drive._locked_files, set())

    def test_download_requires_credentials(self):
        self.client.auth.credentials = None
        with self.assertRaises(ConfigurationError):
            self.client.drive.download_file({"id": "a", "name": "a", "md5Checksum": "x"}, self.tmp.name)


if __name__ == "__main__":
    unittest.main()
