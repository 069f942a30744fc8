"""Translate Firestore REST failures into domain exceptions."""

from collections.abc import Iterator
from contextlib import contextmanager

import httpx

from schoolhub.domain.exceptions import AuthorizationDeniedException, StoreUnavailableException
from schoolhub.infrastructure.firebase._rest_client import (
    DocumentExistsError,
    FirestoreError,
    PermissionDeniedError,
)


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Map errors raised inside the block for operation (e.g. 'profiles.get').

    PermissionDeniedError -> AuthorizationDeniedException; any other
    Firestore or transport error -> StoreUnavailableException.
    DocumentExistsError is left for the caller to handle.
    """
    try:
        yield
    except DocumentExistsError:
        raise
    except PermissionDeniedError as e:
        raise AuthorizationDeniedException(operation, str(e) or None) from e
    except (FirestoreError, httpx.HTTPError) as e:
        raise StoreUnavailableException(operation, f"{type(e).__name__}: {e}") from e
