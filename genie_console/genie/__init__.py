from genie_console.genie.client import GenieClient
from genie_console.genie.models import GenieAnswer, MessageStatus, StartedConversation
from genie_console.genie.poller import GeniePoller

__all__ = ["GenieAnswer", "GenieClient", "GeniePoller", "MessageStatus", "StartedConversation"]
