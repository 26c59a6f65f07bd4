"""errors.py — Exception taxonomy for archive reading and document import."""


class ArchiveError(Exception):
    """Base class for failures reading an EPUB container."""


class ArchiveUnreadable(ArchiveError):
    """The source path does not exist or cannot be opened."""


class ArchiveCorrupt(ArchiveError):
    """The stream is not a ZIP archive or an entry cannot be fully read."""


class DocumentImportError(Exception):
    code = "E_IMPORT"
    is_cancellation = False


class ImportCancelled(DocumentImportError):
    code = "E_PICKER_CANCELLED"
    is_cancellation = True

    def __init__(self, message: str = "User cancelled"):
        super().__init__(message)


class ImportNoSelection(DocumentImportError):
    code = "E_NO_FILE_SELECTED"

    def __init__(self, message: str = "No file selected"):
        super().__init__(message)


class ImportIOError(DocumentImportError):
    code = "E_FILE_COPY_ERROR"
