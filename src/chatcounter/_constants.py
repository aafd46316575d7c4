"""Internal constants shared across the library."""

API_URL = "http://localhost:3000"
USER_AGENT = "chatcounter"

# REST endpoints
CHAT_COUNT_ENDPOINT = "/chat/count"
CURRENT_USER_ENDPOINT = "/users/me"
EVENTS_ENDPOINT = "/events"
MY_EVENTS_ENDPOINT = "/users/me/events"

# Socket.IO event names
JOIN_EVENT = "joinEvent"
NEW_MESSAGE_EVENT = "newMessage"
