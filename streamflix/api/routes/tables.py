"""
Raw table inspection and SQL dump preview endpoints.
"""
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from streamflix.db.session import get_db
from streamflix.schemas.dump import DataSnapshot, DumpImportRequest
from streamflix.services.query_service import QueryService
from streamflix.services.sql_dump import SqlDumpImporter

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get(
    "/tables/{name}",
    response_model=List[Dict[str, Any]],
    status_code=status.HTTP_200_OK,
    summary="Dump a table",
    description="Returns every row of a table; card numbers are masked"
)
def dump_table(name: str, db: Session = Depends(get_db)):
    """
    Dump a table.

    Args:
        name: Table name, e.g. users, or a legacy name such as user2
        db: Database session

    Returns:
        List[Dict[str, Any]]: The table's rows

    Raises:
        NotFoundError: If the table name is unknown
    """
    return QueryService(db).dump_table(name)


@router.post(
    "/import/preview",
    response_model=DataSnapshot,
    status_code=status.HTTP_200_OK,
    summary="Preview a SQL dump",
    description="Parses a SQL dump into the list views without writing anything"
)
def preview_import(request: DumpImportRequest, db: Session = Depends(get_db)):
    snapshot = SqlDumpImporter(db).snapshot(request.sql)
    logger.info(
        f"Previewed dump with {len(snapshot.users)} users and {len(snapshot.movies)} movies"
    )
    return snapshot
