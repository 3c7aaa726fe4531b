# API Route Constants

# Base API
API_BASE = '/api'

# Lease routes
LEASE_BASE = f'{API_BASE}/lease'
LEASE_CREATE = LEASE_BASE
LEASE_MY_LEASES = f'{LEASE_BASE}/my'
LEASE_GET = f'{LEASE_BASE}/{{lease_id}}'
LEASE_CANCEL = f'{LEASE_BASE}/{{lease_id}}'
LEASE_BY_PRODUCT = f'{LEASE_BASE}/product/{{product_id}}'
LEASE_PRODUCT_SSE = f'{LEASE_BASE}/product/{{product_id}}/sse'

# Conversation routes
CONVERSATION_BASE = f'{API_BASE}/conversation'
CONVERSATION_CREATE = CONVERSATION_BASE
CONVERSATION_LIST = CONVERSATION_BASE
CONVERSATION_GET = f'{CONVERSATION_BASE}/{{session_id}}'
CONVERSATION_MESSAGES = f'{CONVERSATION_BASE}/{{session_id}}/messages'
CONVERSATION_READ = f'{CONVERSATION_BASE}/{{session_id}}/read'
CONVERSATION_TYPING = f'{CONVERSATION_BASE}/{{session_id}}/typing'
CONVERSATION_STOP_TYPING = f'{CONVERSATION_BASE}/{{session_id}}/stop_typing'
CONVERSATION_SSE = f'{CONVERSATION_BASE}/{{session_id}}/sse'
