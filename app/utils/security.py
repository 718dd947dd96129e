"""
Input validation utilities
输入验证工具
"""

import re
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class InputValidator:
    """Input validation and sanitization utilities"""

    USERNAME_PATTERN = re.compile(r'^[A-Za-z0-9_]{3,20}$')
    EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
    PASSWORD_MIN_LENGTH = 6
    PASSWORD_MAX_LENGTH = 100

    @classmethod
    def validate_username(cls, username: str) -> bool:
        """3-20 characters: letters, digits, underscore"""
        if not username or not isinstance(username, str):
            return False
        return bool(cls.USERNAME_PATTERN.match(username))

    @classmethod
    def validate_email(cls, email: str) -> bool:
        if not email or not isinstance(email, str):
            return False
        return bool(cls.EMAIL_PATTERN.match(email))

    @classmethod
    def validate_password(cls, password: str) -> bool:
        if not password or not isinstance(password, str):
            return False
        return cls.PASSWORD_MIN_LENGTH <= len(password) <= cls.PASSWORD_MAX_LENGTH

    @classmethod
    def sanitize_input(cls, text: Optional[str], max_length: int = 1000) -> Optional[str]:
        """
        Trim free text before it is stored
        清理用户输入：去除空字节、截断长度、去除首尾空白
        """
        if text is None:
            return None
        if not isinstance(text, str):
            return ""

        text = text[:max_length].replace('\x00', '')
        return text.strip()


input_validator = InputValidator()
