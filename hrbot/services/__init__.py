from hrbot.services.ai_service import AIGateway, get_ai_gateway
from hrbot.services.conversation_service import ConversationRouter, ProcessingMode, SqlBindingStore
from hrbot.services.delivery_service import DeliveryJob, DeliveryService, chunk_message
from hrbot.services.errors import (
    AuthenticationError,
    HRBotError,
    LLMProviderError,
    SlackDeliveryError,
    UpstreamProcessingError,
)
from hrbot.services.message_service import MessageProcessor, get_message_processor
from hrbot.services.signature_service import check_request_signature, verify_slack_signature
from hrbot.services.slack_service import SlackService
from hrbot.services.text_service import strip_citations, strip_mentions
