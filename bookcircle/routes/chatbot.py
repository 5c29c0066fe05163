from fastapi import APIRouter

from bookcircle import chatbot
from bookcircle.models import ChatbotRequest, ChatbotReply
from bookcircle.routes.book import all_books

router = APIRouter()

# Answer FAQs and catalogue questions
@router.post("", response_model=ChatbotReply, response_model_exclude_none=True)
def ask_chatbot(request: ChatbotRequest):
    return chatbot.reply(request.message, all_books)
