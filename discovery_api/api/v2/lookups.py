"""
Record lookups shared by the v2 endpoints.
"""
from sqlalchemy.orm import Session

from discovery_api.core.exceptions import HostNotFoundError, RecordNotFoundError
from discovery_api.models.host import Host, HostKind


def find_host(db: Session, identifier: str, kind: HostKind) -> Host:
    """
    Find a host of the given kind by numeric id or by name.

    Raises:
        HostNotFoundError: if there is no such host
    """
    query = db.query(Host).filter(Host.kind == kind)
    if identifier.isdigit():
        host = query.filter(Host.id == int(identifier)).first()
    else:
        host = query.filter(Host.name == identifier.lower()).first()
    if host is None:
        raise HostNotFoundError(identifier)
    return host


def find_record(db: Session, model, record_id: int, resource: str):
    record = db.query(model).filter(model.id == record_id).first()
    if record is None:
        raise RecordNotFoundError(resource, record_id)
    return record
