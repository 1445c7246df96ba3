"""Service agent chat relayed as a server-sent event stream."""

from typing import Any, AsyncIterator, Dict, List

from app.core.ai_gateway import AIGatewayClient, tool_spec
from app.core.exceptions import ValidationError
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

SYSTEM_PROMPT = """You are a comprehensive AI assistant for MediaMarkt's insurance portal system.

CRITICAL INSTRUCTION: You MUST ALWAYS provide a text response that the user can read. NEVER make a tool call without also providing explanatory text. Every response must contain visible text content.

Your capabilities:

1. PRODUCT INFORMATION
   - Answer questions about MediaMarkt Spain products
   - When asked about products, provide direct information in text
   - Only use search_mediamarkt tool when you need current prices/availability

2. RETAIL AGENT SUPPORT (Current Portal)
   - Sales: Guide agents on selling policies (navigate to /retail/sales)
   - Available Products: Extended Warranty, Insurance Lite, Insurance Max
   - Policy Search: Use /retail/policies to search by policy number or customer details
   - Claims: Create and manage claims at /retail/claims
   - Reports: Access at /retail/reports

3. CUSTOMER PORTAL
   - View policies, submit claims, track payments
   - Access at /dashboard, /claims, /policies, /documents

4. PROGRAM CONFIGURATION
   - Manage programs, products, devices, users
   - Access at /program-configuration

HOW TO RESPOND:
✓ DO: Provide clear, direct text answers
✓ DO: Give specific navigation instructions in text (e.g., "Go to Sales section → Click New Policy")
✓ DO: Explain insurance products directly (Extended Warranty covers breakdowns, Insurance Max covers theft/damage/breakdown)
✓ DO: Answer policy questions conversationally

✗ DON'T: Use tools without accompanying text
✗ DON'T: Leave the user waiting with no response
✗ DON'T: Make tool calls silently

EXAMPLE GOOD RESPONSES:
User: "What can I sell?"
You: "As a retail agent, you can sell three types of insurance products:

1. Extended Warranty (€1.99-€3.99/month) - Covers mechanical/electrical breakdowns
2. Insurance Lite (€3.99-€4.99/month) - Covers accidental damage
3. Insurance Max (€4.99-€6.99/month) - Comprehensive: theft, accidental damage, and breakdown

To sell a policy, navigate to the Sales section in your retail portal and click 'New Policy'. Would you like detailed steps?"

Only use capture_service_request tool when an issue truly needs human intervention.

Be friendly, professional, and ALWAYS provide visible text responses."""

SERVICE_REQUEST_REASONS = [
    "Policy Information",
    "Coverage Query",
    "Billing Issue",
    "Update Details",
    "Technical Support",
    "Product Question",
    "Portal Navigation Help",
    "General Inquiry",
    "Other",
]

SEARCH_MEDIAMARKT_TOOL = tool_spec(
    name="search_mediamarkt",
    description=(
        "Search MediaMarkt Spain website for product information including prices, specs, and "
        "availability. Tell the user you are searching MediaMarkt for the latest information."
    ),
    parameters={
        "type": "object",
        "properties": {
            "search_query": {"type": "string", "description": "Product name or search term"},
            "category": {
                "type": "string",
                "description": "Product category (optional)",
                "enum": ["smartphones", "laptops", "tablets", "televisions", "appliances", "audio"],
            },
        },
        "required": ["search_query"],
        "additionalProperties": False,
    },
)

CAPTURE_SERVICE_REQUEST_TOOL = tool_spec(
    name="capture_service_request",
    description=(
        "Capture a service request when the customer's query is complex and requires human review. "
        "Use this when you cannot fully resolve the issue or when the customer needs specific "
        "assistance from a service agent."
    ),
    parameters={
        "type": "object",
        "properties": {
            "customer_name": {"type": "string", "description": "Customer's full name"},
            "customer_email": {"type": "string", "description": "Customer's email address"},
            "policy_number": {
                "type": "string",
                "description": "Policy number if mentioned by customer (optional)",
            },
            "reason": {
                "type": "string",
                "enum": SERVICE_REQUEST_REASONS,
                "description": "Category of the service request",
            },
            "portal_context": {
                "type": "string",
                "enum": ["customer", "retail", "program_config"],
                "description": "Which portal the request originated from (optional)",
            },
            "details": {
                "type": "string",
                "description": "Detailed description of the customer's issue or request",
            },
            "conversation_summary": {
                "type": "string",
                "description": "Brief summary of your conversation with the customer",
            },
        },
        "required": ["customer_name", "customer_email", "reason", "details", "conversation_summary"],
        "additionalProperties": False,
    },
)

AGENT_TOOLS = [SEARCH_MEDIAMARKT_TOOL, CAPTURE_SERVICE_REQUEST_TOOL]


class ServiceAgentService:
    def __init__(self, ai_client: AIGatewayClient):
        self.ai_client = ai_client

    async def chat(self, messages: List[Dict[str, Any]]) -> AsyncIterator[bytes]:
        """Open the agent's streamed reply to a conversation.

        Raises:
            ValidationError: If there are no messages
            RateLimitError, PaymentRequiredError: Passed through from the gateway
        """
        if not messages:
            raise ValidationError("messages are required")

        LOGGER.info("Service agent chat", extra={"message_count": len(messages)})
        return await self.ai_client.stream(
            [{"role": "system", "content": SYSTEM_PROMPT}, *messages],
            tools=AGENT_TOOLS,
        )
