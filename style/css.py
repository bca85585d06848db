def get_css() -> str:
    """
    Returns the CSS styling for the application
    """
    return """
    /* Host status banner */
    .status-banner {
        margin-top: 6px;
        margin-bottom: 10px;
    }
    .status-banner.status-up { color: #ff79c6; }
    .status-banner.status-ok { color: #50fa7b; }
    .status-banner.status-unknown { color: #f1fa8c; }
    .status-banner.status-busy { color: #8be9fd; }
    .tiny-link { font-size: 10px; padding: 0 4px; opacity: 0.85; }

    /* Floating modal surfaces */
    .modal-surface {
        border: 1px solid #6272a4;
        border-radius: 8px;
        background-color: rgba(40, 42, 54, 0.96);
    }
    .modal-title { font-weight: bold; opacity: 0.85; }
    .terminal-view,
    .terminal-view text {
        background-color: #282a36;
        color: #f8f8f2;
        font-size: 12px;
    }
    .terminal-hint { font-size: 11px; opacity: 0.8; }
    .confirm-prompt entry { background: transparent; border: none; box-shadow: none; }
    """
