from __future__ import annotations

# Tool descriptions used by FastMCP when registering tools. Keep short and clear.
TOOL_DESCRIPTIONS: dict[str, str] = {
    "configure_gemini_token": "Configure your Gemini API token for nano-banana image generation",
    "generate_image": (
        "Generate a NEW image from text prompt. Use this ONLY when creating a completely new image, "
        "not when modifying an existing one."
    ),
    "edit_image": (
        "Edit a SPECIFIC existing image file, optionally using additional reference images. "
        "Use this when you have the exact file path of an image to modify."
    ),
    "get_configuration_status": "Check if Gemini API token is configured",
    "get_last_image_info": (
        "Get information about the last generated/edited image in this session (file path, size, etc.). "
        "Use this to check what image is currently available for further editing."
    ),
}


SERVER_INSTRUCTIONS: str = (
    "Nano Banana MCP Server - Agent Instructions.\n"
    "Role: This server generates and edits images with Gemini and saves them under a workplace directory.\n\n"
    "Workflow (short):\n"
    "1) Call get_configuration_status. If not configured, call configure_gemini_token with an API key.\n"
    "2) Call generate_image for new images, or edit_image with the file path of an existing image.\n"
    "3) Call get_last_image_info to find the most recently saved image.\n\n"
    "Hard rules (must follow):\n"
    "- relative_save_path is relative to the workplace directory.\n"
    "- edit_image needs a readable imagePath; unreadable referenceImages are skipped.\n\n"
    "Outputs and failures (summary):\n"
    "- Successful calls return a status text block followed by the images as MCP ImageContent.\n"
    "- A response with no image is still a success and explains that no image was produced.\n"
    "- Failures surface as MCP ToolErrors prefixed with a stable error kind "
    "(invalid_params, not_configured, method_not_found, upstream_failure, internal_error)."
)


__all__ = ["TOOL_DESCRIPTIONS", "SERVER_INSTRUCTIONS"]
