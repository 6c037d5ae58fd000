from sqlalchemy.orm import Session
from models.log import Log

# Business audit trail; committed on its own after the main change is saved
def write_log(db: Session, *, user_id, action, resource, status="SUCCESS", ip=None, meta=None):
    entry = Log(user_id=user_id, action=action, resource=resource, status=status, ip=ip, meta=meta or {})
    db.add(entry)
    db.commit()


def client_ip(request):
    return request.client.host if request is not None and request.client else None
