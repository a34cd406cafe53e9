from .routers import AuthAPI, ContactAPI, ChatAPI, MessageAPI
from .errors import register_error_handlers
