from dataclasses import dataclass
from pathlib import Path
from threading import Event
from typing import Any, Dict, List, Optional

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from ..errors import AmbiguousFolderError, AuthenticationError, FolderNotFoundError, ensure_not_cancelled
from ..schemas import RemoteDocument
from ..settings import OAuthSettings, app_data_dir

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
DOCUMENT_MIME_TYPE = "application/vnd.google-apps.document"

DEFAULT_SCOPES = (
    "https://www.googleapis.com/auth/drive.readonly",
    "https://www.googleapis.com/auth/documents.readonly",
)


@dataclass
class DriveSession:
    """Authorized Drive v3 and Docs v1 service objects."""
    drive: Any
    docs: Any


def default_token_path(settings: OAuthSettings) -> Path:
    return app_data_dir() / settings.application_name / "token.json"


def _client_config(settings: OAuthSettings) -> Dict[str, Any]:
    installed = {
        "client_id": settings.client_id,
        "client_secret": settings.client_secret,
        "auth_uri": "https://accounts.google.com/o/oauth2/auth",
        "token_uri": "https://oauth2.googleapis.com/token",
    }
    if settings.redirect_uri:
        installed["redirect_uris"] = [settings.redirect_uri]
    return {"installed": installed}


def _authorize(settings: OAuthSettings, scopes: List[str], token_path: Path) -> Credentials:
    creds = None
    if token_path.exists():
        creds = Credentials.from_authorized_user_file(str(token_path), scopes)

    if creds and creds.valid:
        return creds
    if creds and creds.expired and creds.refresh_token:
        creds.refresh(Request())
    else:
        flow = InstalledAppFlow.from_client_config(_client_config(settings), scopes)
        creds = flow.run_local_server(port=0)

    token_path.parent.mkdir(parents=True, exist_ok=True)
    token_path.write_text(creds.to_json(), encoding="utf-8")
    return creds


def authenticate(settings: OAuthSettings, token_path: Optional[Path] = None,
                 cancel: Optional[Event] = None) -> DriveSession:
    """
    Run the installed-app OAuth flow (or reuse the cached token) and build the
    Drive and Docs services. Any failure is fatal and raised as AuthenticationError.
    """
    ensure_not_cancelled(cancel)
    if not settings.client_id or not settings.client_secret:
        raise AuthenticationError("Google OAuth client id and client secret are required.")

    scopes = list(settings.scopes or DEFAULT_SCOPES)
    token_path = Path(token_path) if token_path else default_token_path(settings)
    try:
        creds = _authorize(settings, scopes, token_path)
    except (GoogleAuthError, OAuth2Error, OSError, ValueError) as e:
        raise AuthenticationError(f"Google authorization failed: {e}") from e

    drive = build("drive", "v3", credentials=creds, cache_discovery=False)
    docs = build("docs", "v1", credentials=creds, cache_discovery=False)
    return DriveSession(drive=drive, docs=docs)


def escape_query_value(value: str) -> str:
    """Escape a literal for use inside a single-quoted Drive query string."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _list_files(session: DriveSession, query: str, cancel: Optional[Event] = None) -> List[Dict[str, Any]]:
    files: List[Dict[str, Any]] = []
    page_token = None
    while True:
        ensure_not_cancelled(cancel)
        resp = session.drive.files().list(
            q=query,
            fields="nextPageToken, files(id, name)",
            pageToken=page_token,
        ).execute()
        files.extend(resp.get("files", []))
        page_token = resp.get("nextPageToken")
        if not page_token:
            return files


def find_folder_id_by_exact_name(session: DriveSession, name: str, cancel: Optional[Event] = None) -> str:
    query = (
        f"mimeType = '{FOLDER_MIME_TYPE}' and trashed = false "
        f"and name = '{escape_query_value(name)}'"
    )
    matches = _list_files(session, query, cancel)
    if not matches:
        raise FolderNotFoundError(f"No folder named exactly '{name}' was found in Drive.")
    if len(matches) > 1:
        raise AmbiguousFolderError(name, matches)
    return matches[0]["id"]


def list_documents_in_folder(session: DriveSession, folder_id: str,
                             cancel: Optional[Event] = None) -> List[RemoteDocument]:
    query = (
        f"'{escape_query_value(folder_id)}' in parents "
        f"and mimeType = '{DOCUMENT_MIME_TYPE}' and trashed = false"
    )
    return [
        RemoteDocument(id=f.get("id") or "", name=f.get("name") or "")
        for f in _list_files(session, query, cancel)
    ]


def flatten_document_text(document: Dict[str, Any]) -> str:
    """Concatenate the text runs of every paragraph in the document body, in order.

    Tables, images and other non-paragraph blocks contribute nothing.
    """
    parts: List[str] = []
    for element in document.get("body", {}).get("content", []):
        para = element.get("paragraph")
        if not para:
            continue
        for elem in para.get("elements", []):
            tr = elem.get("textRun")
            if tr:
                parts.append(tr.get("content", ""))
    return "".join(parts)


def fetch_document_text(session: DriveSession, document_id: str, cancel: Optional[Event] = None) -> str:
    if not document_id:
        raise ValueError("Document id is required")
    ensure_not_cancelled(cancel)
    document = session.docs.documents().get(documentId=document_id).execute()
    return flatten_document_text(document)


def get_folder_documents(session: DriveSession, name: str, cancel: Optional[Event] = None) -> List[RemoteDocument]:
    """Resolve the folder by exact name, list its Google Docs and fetch each one's text."""
    folder_id = find_folder_id_by_exact_name(session, name, cancel)
    docs = list_documents_in_folder(session, folder_id, cancel)
    for doc in docs:
        doc.text = fetch_document_text(session, doc.id, cancel)
    return docs
