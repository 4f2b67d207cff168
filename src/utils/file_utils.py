import os
import re
import tempfile

_UNSAFE_CHARS = re.compile(r'[^a-zA-Z0-9\-_]+')


class FileUtils:
    """Utility class for file operations"""

    @staticmethod
    def sanitize_style_name(style_name: str) -> str:
        """Turn a style name into a safe directory name"""
        return _UNSAFE_CHARS.sub('', re.sub(r'\s', '-', style_name))

    @staticmethod
    def ensure_directory_exists(directory_path: str) -> None:
        """Create directory if it doesn't exist"""
        os.makedirs(directory_path, exist_ok=True)

    @staticmethod
    def file_exists(file_path: str) -> bool:
        """Check if file exists"""
        return os.path.isfile(file_path)

    @staticmethod
    def write_atomic(file_path: str, content: bytes) -> None:
        """Write to a temp file in the same directory, then rename into place"""
        directory = os.path.dirname(file_path)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.tmp-', suffix='.part')
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(content)
            os.replace(tmp_path, file_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
