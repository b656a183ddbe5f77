import os
import threading
from typing import Any, Dict, Iterable, List, Optional, Tuple, TypeAlias

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseDownload

from workspace_api.utils.query import Query
from workspace_api.utils.errors import ConfigurationError, RequestError
from workspace_api.utils.fanout import fan_out
from workspace_api.utils.logger import app_logger as logger

DRIVE_FILES = "https://www.googleapis.com/drive/v3/files"

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
SHORTCUT_MIME_TYPE = "application/vnd.google-apps.shortcut"

FOLDER_LIST_FIELDS = (
    "nextPageToken, files(id, name, md5Checksum, mimeType, originalFilename, owners, "
    "parents, shortcutDetails/targetId, shortcutDetails/targetMimeType)"
)

# Google-native files have no binary content and must be exported.
EXPORT_FORMATS = {
    "application/vnd.google-apps.document": (
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "docx",
    ),
    "application/vnd.google-apps.spreadsheet": (
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "xlsx",
    ),
    "application/vnd.google-apps.presentation": (
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        "pptx",
    ),
    "application/vnd.google-apps.drawing": ("application/pdf", "pdf"),
    "application/vnd.google-apps.script": ("application/vnd.google-apps.script+json", "json"),
    "application/vnd.google-apps.form": ("application/zip", "zip"),
}

DriveService: TypeAlias = Any
GFile: TypeAlias = Dict[str, Any]


class DriveFileQuery(Query):
    acknowledge_abuse: Optional[bool] = None
    corpora: Optional[str] = None
    drive_id: Optional[str] = None
    include_items_from_all_drives: Optional[bool] = None
    order_by: Optional[str] = None
    page_size: Optional[int] = None
    page_token: Optional[str] = None
    q: Optional[str] = None
    spaces: Optional[str] = None
    supports_all_drives: Optional[bool] = None
    include_permissions_for_view: Optional[str] = None
    include_labels: Optional[str] = None
    fields: Optional[str] = None
    upload_type: Optional[str] = None
    add_parents: Optional[str] = None
    keep_revision_forever: Optional[bool] = None
    ocr_language: Optional[str] = None
    remove_parents: Optional[str] = None
    use_content_as_indexable_text: Optional[bool] = None

    def validate_query(self) -> "DriveFileQuery":
        q = self.model_copy()
        if q.is_empty():
            q.fields = "*"
            return q
        if not q.corpora:
            q.corpora = "user"
        if not q.fields:
            q.fields = "*"
        if not q.page_size:
            q.page_size = 100
        return q


class PermissionsQuery(Query):
    email_message: Optional[str] = None
    include_permissions_for_view: Optional[str] = None
    page_size: Optional[int] = None
    page_token: Optional[str] = None
    move_to_new_owners_root: Optional[bool] = None
    send_notification_email: Optional[bool] = None
    supports_all_drives: Optional[bool] = None
    transfer_ownership: Optional[bool] = None
    use_domain_admin_access: Optional[bool] = None


def folder_query(folder_id: str, query: Optional[DriveFileQuery] = None) -> DriveFileQuery:
    if query is None or query.is_empty():
        return DriveFileQuery(
            fields=FOLDER_LIST_FIELDS,
            page_size=1000,
            include_labels="*",
            q=f"'{folder_id}' in parents and trashed = false",
        )
    q = query.validate_query()
    if not q.q:
        q.q = f"'{folder_id}' in parents and trashed = false"
    return q


class DriveClient:
    def __init__(self, client) -> None:
        self.client = client
        self._local = threading.local()
        self._lock = threading.Lock()
        self._locked_files = set()

    def get_file(self, file_id: str, fields: str = "*") -> GFile:
        url = self.client.build_url(DRIVE_FILES, file_id)
        return self.client.do("GET", url, query={"fields": fields})

    def get_file_path(self, file_id: str) -> str:
        file = self.get_file(file_id)
        parents = file.get("parents") or []
        if not parents:
            if file.get("shared"):
                return f"/Shared with me/{file['name']}"
            return f"/{file['name']}"
        return f"{self.get_file_path(parents[0])}/{file['name']}"

    def list_root(self) -> Dict[str, List[GFile]]:
        return self.list_files({"id": "root", "path": "/"})

    def list_files(
        self, file: GFile, query: Optional[DriveFileQuery] = None
    ) -> Dict[str, List[GFile]]:
        """
        List everything below `file`, descending into subfolders.

        Each folder is paged through sequentially; the folders found on one
        level are then listed concurrently (bounded by MAX_WORKERS) before the
        next level starts. Every returned file carries a `path`. A custom
        `query` applies to the top folder only.
        """
        path = file.get("path")
        if not path:
            path = "/" if file["id"] == "root" else f"{self.get_file_path(file['id'])}/"
        logger.info(f"Listing files below {path}")

        files: List[GFile] = []
        frontier: List[Tuple[str, str]] = [(file["id"], path)]
        level_query = query
        while frontier:
            q = level_query
            pages = fan_out(
                lambda folder: self._list_folder(folder[0], folder[1], q),
                frontier,
                max_workers=self.client.settings.MAX_WORKERS,
            )
            frontier = []
            for children in pages:
                for child in children:
                    files.append(child)
                    if child.get("mimeType") == FOLDER_MIME_TYPE:
                        frontier.append((child["id"], f"{child['path']}/"))
            level_query = None

        logger.debug(f"Files found below {path}: {len(files)}")
        return {"files": files}

    def _list_folder(
        self, folder_id: str, parent_path: str, query: Optional[DriveFileQuery]
    ) -> List[GFile]:
        q = folder_query(folder_id, query)
        page = self.client.do_paginated(
            "GET", DRIVE_FILES, query=q.to_params(), items_key="files"
        )
        children = page["files"]
        for child in children:
            child["path"] = f"{parent_path}{child['name']}"
            logger.trace(f"File path: {child['path']}")
        return children

    def move_file(self, file: GFile, folder: GFile) -> GFile:
        if not file.get("parents"):
            logger.debug(f"File {file['id']} has no parents loaded, fetching it")
            file = self.get_file(file["id"])
        q = DriveFileQuery(
            add_parents=folder["id"],
            remove_parents=file["parents"][0],
            fields="id,name,parents",
        )
        url = self.client.build_url(DRIVE_FILES, file["id"])
        return self.client.do("PATCH", url, query=q.to_params())

    def list_permissions(self, file_id: str) -> Dict[str, Any]:
        url = self.client.build_url(DRIVE_FILES, file_id, "permissions")
        return self.client.do_paginated("GET", url, items_key="permissions")

    def get_permission(self, file_id: str, permission_id: str) -> Dict[str, Any]:
        url = self.client.build_url(DRIVE_FILES, file_id, "permissions", permission_id)
        return self.client.do("GET", url)

    def transfer_ownership(self, file_id: str, new_owner: str) -> Dict[str, Any]:
        logger.info(f"Transferring ownership of {file_id} to {new_owner}")
        permission = {"emailAddress": new_owner, "role": "owner", "type": "user"}
        q = PermissionsQuery(transfer_ownership=True)
        url = self.client.build_url(DRIVE_FILES, file_id, "permissions")
        return self.client.do("POST", url, query=q.to_params(), body=permission)

    def _get_drive_service(self) -> DriveService:
        if not hasattr(self._local, "drive_service"):
            credentials = self.client.auth.credentials
            if credentials is None:
                raise ConfigurationError("Downloading files requires OAuth or service account credentials")
            self._local.drive_service = build("drive", "v3", credentials=credentials)
        return self._local.drive_service

    def download_files(self, files: Iterable[GFile], base_path: str) -> List[Optional[str]]:
        """Download files concurrently. Failures are logged to `errors.txt` under base_path."""
        return fan_out(
            lambda f: self._download_or_record(f, base_path),
            list(files),
            max_workers=self.client.settings.MAX_WORKERS,
        )

    def _download_or_record(self, file: GFile, base_path: str) -> Optional[str]:
        try:
            return self.download_file(file, base_path)
        except HttpError as e:
            if e.resp.status == 403 and "cannot be downloaded" in str(e):
                logger.warning(f"Skipping file \"{file['name']}\" ({file['id']}) - no download permission")
                self._record(base_path, "permission_errors.txt", f"\"{file['name']}\" | ({file['id']})")
                return None
            self._record_error(file, base_path, e)
            return None
        except RequestError as e:
            # shortcut targets are resolved through the REST client
            self._record_error(file, base_path, e)
            return None

    def _record_error(self, file: GFile, base_path: str, error: Exception) -> None:
        message = f"Error downloading file \"{file['name']}\" ({file['id']}): {error}"
        logger.error(message)
        self._record(base_path, "errors.txt", message)

    def _record(self, base_path: str, name: str, line: str) -> None:
        os.makedirs(base_path, exist_ok=True)
        with self._lock:
            with open(os.path.join(base_path, name), "a") as f:
                f.write(f"{line}\n")

    def download_file(self, file: GFile, base_path: str) -> Optional[str]:
        """
        Save one file below base_path, mirroring its Drive path. Binary files
        are fetched as-is, Google-native ones are exported to an Office/PDF/
        JSON/ZIP equivalent, shortcuts become a `.lnk.txt` holding the target
        path. Folders and unknown native types are skipped. Returns the saved
        path or None.
        """
        mime_type = file.get("mimeType", "")
        if mime_type == FOLDER_MIME_TYPE:
            return None

        relative = (file.get("path") or file["name"]).lstrip("/")
        new_file_path = os.path.join(base_path, relative)

        if "md5Checksum" in file:
            request = self._get_drive_service().files().get_media(fileId=file["id"])
            return self._write_request_to_file(file["id"], request, new_file_path)

        if mime_type == SHORTCUT_MIME_TYPE:
            target_path = self.get_file_path(file["shortcutDetails"]["targetId"])
            os.makedirs(os.path.dirname(new_file_path), exist_ok=True)
            with open(f"{new_file_path}.lnk.txt", "w") as f:
                f.write(target_path)
            return f"{new_file_path}.lnk.txt"

        export_format = EXPORT_FORMATS.get(mime_type)
        if export_format is None:
            logger.warning(f"Unknown file type: {mime_type} ({file['id']})")
            return None
        export_mime_type, extension = export_format
        request = (
            self._get_drive_service()
            .files()
            .export_media(fileId=file["id"], mimeType=export_mime_type)
        )
        return self._write_request_to_file(file["id"], request, f"{new_file_path}.{extension}")

    def _get_available_path_and_lock_it(self, file_id: str, file_path: str) -> str:
        # Two Drive files may share a name; suffix the later one with its id.
        name, ext = os.path.splitext(file_path)
        new_path = file_path
        counter = 1
        while True:
            with self._lock:
                if new_path not in self._locked_files and not os.path.exists(new_path):
                    self._locked_files.add(new_path)
                    logger.trace(f"Locked new path: {new_path}")
                    return new_path
            new_path = f"{name}_{file_id[:5]}_{counter}{ext}"
            counter += 1

    def _write_request_to_file(self, file_id: str, request: Any, file_path: str) -> str:
        os.makedirs(os.path.dirname(file_path), exist_ok=True)
        logger.debug(f"Downloading file: {file_path}")
        file_path = self._get_available_path_and_lock_it(file_id, file_path)
        try:
            with open(file_path, "wb") as f:
                downloader = MediaIoBaseDownload(f, request)
                done = False
                while not done:
                    _, done = downloader.next_chunk()
        finally:
            self._unlock_file_path(file_path)
        return file_path

    def _unlock_file_path(self, file_path: str) -> None:
        with self._lock:
            self._locked_files.discard(file_path)
            logger.trace(f"Unlocked path: {file_path}")
