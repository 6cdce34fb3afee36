"""lexis: vocabulary review client for a remote catalog service."""

from lexis.consts import VERSION

__version__ = VERSION
