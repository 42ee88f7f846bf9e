"""
File: app/utils/masking.py
Description: PII 数据脱敏工具 (Data Masking)

用于日志记录时的隐私保护，三方登录链路中的 email / sub / refresh token
写日志前必须经过这里。

Author: jinmozhe
Created: 2025-11-26
Updated: 2026-10-19 (Provider subject masking)
"""

MASK = "******"


def mask_email(email: str | None) -> str:
    """
    邮箱脱敏。
    规则: 保留用户名首位和域名，中间掩盖。
    示例: jinmozhe@example.com -> j***@example.com
    """
    if not email or "@" not in email:
        return MASK

    user_part, domain_part = email.split("@", 1)
    if len(user_part) <= 1:
        masked_user = "*" * 4
    else:
        masked_user = f"{user_part[0]}***"
    return f"{masked_user}@{domain_part}"


def mask_identifier(value: str | None, keep: int = 4) -> str:
    """
    不透明标识符脱敏 (三方 sub / refresh token)。
    规则: 只保留末尾 keep 位；过短的值整体掩盖。
    示例: 001234.abcdef -> ***cdef
    """
    if not value or len(value) <= keep * 2:
        return MASK
    return f"***{value[-keep:]}"
