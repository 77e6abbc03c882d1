# -*- coding: utf-8 -*-

from settee import exceptions
from settee.client import Client, DEFAULT_BASE_URL
from settee.design import DesignDocument, Source
from settee.placeholders import PlaceholderResolver
from settee.session import Session
from settee.streaming import Event, RowStream
from settee.views import Row, ViewResult

__all__ = [
    'Client', 'DEFAULT_BASE_URL', 'DesignDocument', 'Source', 'PlaceholderResolver',
    'Session', 'Event', 'RowStream', 'Row', 'ViewResult', 'exceptions',
]
