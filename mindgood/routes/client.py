"""
Client self-service
"""

from fastapi import APIRouter, Depends
from google.cloud.firestore_v1.base_query import FieldFilter

from ..auth import CurrentUser, require_client
from ..firebase import APPOINTMENTS, get_db
from ..shared.lookups import UserLookup
from ..shared.serialization import serialize_appointment

router = APIRouter(prefix="/api/client", tags=["Client"])


@router.get("/appointments")
async def client_appointments(client: CurrentUser = Depends(require_client), db=Depends(get_db)):
    users = UserLookup(db)
    docs = (
        db.collection(APPOINTMENTS)
        .where(filter=FieldFilter("clientId", "==", client.uid))
        .order_by("scheduledFor", direction="DESCENDING")
        .stream()
    )

    appointments = []
    for doc in docs:
        data = doc.to_dict() or {}
        appointment = serialize_appointment(doc.id, data)
        therapist = users.party(data.get("therapistId"), "Therapist")
        therapist.pop("email")
        appointment["therapist"] = therapist
        appointments.append(appointment)

    return {"appointments": appointments}
