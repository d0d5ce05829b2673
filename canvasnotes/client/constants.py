# Timeouts & durations (seconds)
UNDO_GRACE_PERIOD_SECONDS = 30.0
# The undo control closes one second before the server-side window does
UNDO_AFFORDANCE_SECONDS = UNDO_GRACE_PERIOD_SECONDS - 1.0

# Interaction thresholds
NODE_DRAG_THRESHOLD = 1  # Minimum pixels moved to trigger a position update

# Flow node types per block type
TEXT_BLOCK_NODE = "textBlockNode"
LINK_BLOCK_NODE = "linkBlockNode"
STYLED_BLOCK_NODE = "styledBlockNode"
