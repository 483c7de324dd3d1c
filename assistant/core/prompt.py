SYSTEM_PROMPT = (
    "You are a helpful AI assistant capable of understanding both text and images."
)

IMAGE_FALLBACK_PROMPT = "What's in this image?"
