import logging
from datetime import datetime

from sqlalchemy.orm import Session

from app.config import settings
from app.errors import not_found, validation_error
from app.models import BlockedIP
from app.services.common import as_utc, paginate, search_filter, utcnow

logger = logging.getLogger(__name__)

BLOCKING_STATUSES = ("active", "permanent", "temporary")
BLOCK_STATUSES = BLOCKING_STATUSES + ("expired",)


def is_block_effective(block: BlockedIP, now: datetime | None = None) -> bool:
    if block.status not in BLOCKING_STATUSES:
        return False
    if block.status == "temporary":
        expires_at = as_utc(block.expires_at)
        return expires_at is not None and expires_at > (now or utcnow())
    return True


def is_ip_blocked(db: Session, ip: str) -> bool:
    block = db.query(BlockedIP).filter(BlockedIP.ip == ip).first()
    return block is not None and is_block_effective(block)


def list_blocked_ips(
    db: Session,
    page: int = 1,
    limit: int = 10,
    status: str | None = None,
    search: str | None = None,
):
    query = db.query(BlockedIP)
    if status:
        query = query.filter(BlockedIP.status == status)
    condition = search_filter(search, [BlockedIP.ip, BlockedIP.reason, BlockedIP.location])
    if condition is not None:
        query = query.filter(condition)
    return paginate(query.order_by(BlockedIP.blocked_at.desc(), BlockedIP.id.desc()), page, limit)


def block_ip(
    db: Session,
    ip: str,
    reason: str,
    blocked_by: str,
    status: str = "active",
    expires_at: datetime | None = None,
    location: str | None = None,
) -> BlockedIP:
    """Blocks an IP; blocking an already known IP refreshes it and bumps attempts."""
    if status not in BLOCK_STATUSES:
        raise validation_error(f"Invalid block status: {status}")
    if status == "temporary" and expires_at is None:
        raise validation_error("Temporary blocks need an expiry")

    block = db.query(BlockedIP).filter(BlockedIP.ip == ip).first()
    if block:
        block.attempts = (block.attempts or 0) + 1
        block.reason = reason
        block.blocked_by = blocked_by
        block.status = status
        block.expires_at = expires_at
        block.blocked_at = utcnow()
        if location:
            block.location = location
    else:
        block = BlockedIP(
            ip=ip,
            reason=reason,
            blocked_by=blocked_by,
            status=status,
            expires_at=expires_at,
            location=location or "Unknown",
            attempts=1,
        )
        db.add(block)

    db.commit()
    db.refresh(block)
    logger.warning("IP blocked", extra={"ip": ip, "status": status, "blocked_by": blocked_by})
    return block


def unblock_ip(db: Session, block_id: int) -> str:
    """Removes the block and returns the IP it covered."""
    block = db.query(BlockedIP).filter(BlockedIP.id == block_id).first()
    if not block:
        raise not_found("Blocked IP")
    ip = block.ip
    db.delete(block)
    db.commit()
    logger.info("IP unblocked", extra={"ip": ip})
    return ip


def auto_block(db: Session, ip: str, failed_attempts: int, threshold: int | None = None) -> BlockedIP | None:
    """Blocks the IP once failed attempts reach the threshold."""
    threshold = threshold or settings.auto_block_threshold
    if failed_attempts < threshold:
        return None
    return block_ip(
        db,
        ip,
        reason=f"Automatic block after {failed_attempts} failed attempts",
        blocked_by="system",
    )


def cleanup_expired_blocks(db: Session) -> int:
    """Marks temporary blocks past their expiry as expired."""
    now = utcnow()
    count = 0
    for block in db.query(BlockedIP).filter(BlockedIP.status == "temporary").all():
        expires_at = as_utc(block.expires_at)
        if expires_at is not None and expires_at <= now:
            block.status = "expired"
            count += 1
    if count:
        db.commit()
    logger.info("Expired IP blocks cleaned up", extra={"count": count})
    return count


def block_stats(db: Session) -> dict:
    blocks = db.query(BlockedIP).all()
    by_status = {s: 0 for s in BLOCK_STATUSES}
    for block in blocks:
        by_status[block.status] = by_status.get(block.status, 0) + 1
    return {
        "total": len(blocks),
        "effective": sum(1 for b in blocks if is_block_effective(b)),
        "by_status": by_status,
        "total_attempts": sum(b.attempts or 0 for b in blocks),
    }
