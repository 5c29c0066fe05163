import uuid
import logging
from typing import List
from datetime import datetime, timezone
from boto3.dynamodb.conditions import Key
from fastapi import APIRouter, Depends, HTTPException

from bookcircle.database import messages_table, fetch_all, fits_partition_key
from bookcircle.conversations import conversation_id, derive_conversations
from bookcircle.models import MessageCreate, MessageOut, MessageSent, ConversationOut
from bookcircle.routes.auth import get_current_user
from bookcircle.routes.user import get_user, get_username

router = APIRouter()
logger = logging.getLogger(__name__)

# Save the message to db
@router.post("", response_model=MessageSent)
def send_message(data: MessageCreate, user: dict = Depends(get_current_user)):
    sender = user["user_id"]
    recipient = data.to
    if not fits_partition_key(conversation_id(sender, recipient)) or not get_user(recipient):
        raise HTTPException(status_code=404, detail="Recipient not found")

    created_at = datetime.now(timezone.utc).isoformat()
    message_id = str(uuid.uuid4())
    item = {
        "conversation_id": conversation_id(sender, recipient),
        "message_key": f"{created_at}#{message_id}",
        "message_id": message_id,
        "sender": sender,
        "recipient": recipient,
        "text": data.text,
        "created_at": created_at,
        "read": False,
    }
    messages_table().put_item(Item=item)
    logger.debug("Message %s stored from %s to %s", message_id, sender, recipient)

    return {"success": True, "message": item}

# Every message the user sent or received
def _messages_involving(user_id: str) -> List[dict]:
    table = messages_table()
    sent = fetch_all(
        table.query,
        IndexName="sender-message_key-index",
        KeyConditionExpression=Key("sender").eq(user_id),
        ScanIndexForward=False,  # newest -> oldest
    )
    received = fetch_all(
        table.query,
        IndexName="recipient-message_key-index",
        KeyConditionExpression=Key("recipient").eq(user_id),
        ScanIndexForward=False,
    )
    # a message to yourself shows up in both indexes
    unique = {m["message_key"]: m for m in sent + received}
    return list(unique.values())

# Last message with every counterpart, most recent first
@router.get("/conversations", response_model=List[ConversationOut])
def get_conversations(user: dict = Depends(get_current_user)):
    user_id = user["user_id"]
    return derive_conversations(user_id, _messages_involving(user_id), get_username)

# Get the whole thread with the other user
@router.get("/thread/{other_user}", response_model=List[MessageOut])
def get_thread(other_user: str, user: dict = Depends(get_current_user)):
    me = user["user_id"]
    thread_id = conversation_id(me, other_user)
    if not fits_partition_key(thread_id):
        return []

    items = fetch_all(
        messages_table().query,
        KeyConditionExpression=Key("conversation_id").eq(thread_id),
        ScanIndexForward=True,  # oldest -> newest
    )
    # ids are free text here, keep only the exact pair
    pair = {me, other_user}
    return [m for m in items if {m["sender"], m["recipient"]} == pair]
