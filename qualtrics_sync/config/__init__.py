"""
qualtrics_sync.config - Configuration management module

Contains the mailing lists file parser. Settings loading lives in
qualtrics_sync.config.loader.
"""

from qualtrics_sync.config.mailing_lists import (
    MailingListConfig,
    MailingListConfigError,
    load_mailing_lists,
    parse_mailing_lists,
)

__all__ = [
    "MailingListConfig",
    "MailingListConfigError",
    "load_mailing_lists",
    "parse_mailing_lists",
]
