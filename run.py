#!/usr/bin/env python3
"""Run script for noticedesk."""

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "noticedesk.api.app:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
