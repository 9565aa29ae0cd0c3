from .file_storage import ALLOWED_TYPES, FileStorage, file_category, is_safe_file_name

__all__ = ["ALLOWED_TYPES", "FileStorage", "file_category", "is_safe_file_name"]
