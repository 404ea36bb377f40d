"""Smoke test for a running Leaf Network backend (HTTP + WebSocket)."""

import asyncio
import json
import os

import requests
import websockets

# Configuration
API_URL = os.getenv("LEAFNET_API_URL", "http://127.0.0.1:8000")
WS_URL = API_URL.replace("http", "ws", 1) + "/ws/dashboard"


def log(msg, status="INFO"):
    colors = {
        "INFO": "\033[94m",
        "SUCCESS": "\033[92m",
        "ERROR": "\033[91m",
        "RESET": "\033[0m"
    }
    print(f"{colors.get(status, '')}[{status}] {msg}{colors['RESET']}")


def test_health():
    try:
        log("Testing Backend Health...")
        response = requests.get(f"{API_URL}/health", timeout=10)
        if response.status_code == 200:
            log(f"Backend Healthy: {response.json()}", "SUCCESS")
            return True
        log(f"Backend Returned {response.status_code}", "ERROR")
        return False
    except requests.RequestException as e:
        log(f"Backend Connection Failed: {e}", "ERROR")
        return False


def test_dashboard():
    try:
        log("Testing Dashboard Snapshot (may take 5-10s on first load)...")
        response = requests.get(f"{API_URL}/api/dashboard", timeout=60)
        if response.status_code != 200:
            log(f"Dashboard Failed: {response.text}", "ERROR")
            return False
        data = response.json()
        log(f"Weather: {data['weather']['temperature']}°C, {data['weather']['condition']}", "INFO")
        log(f"Soil pH: {data['soil']['ph']}", "INFO")
        log(f"NDVI: {data['ndvi']['ndvi']} ({data['ndvi']['status']})", "INFO")
        if data["weather"]["temperature"] == "--":
            log("Weather fell back to placeholders (check OPENWEATHER_API_KEY)", "ERROR")
            return False
        log("Dashboard Snapshot Received", "SUCCESS")
        return True
    except requests.RequestException as e:
        log(f"Dashboard Request Error: {e}", "ERROR")
        return False


def test_chat():
    payload = {"message": "Should I irrigate today?", "session_id": "smoke-test"}
    try:
        log("Testing AI Chat...")
        response = requests.post(f"{API_URL}/api/chat", json=payload, timeout=60)
        if response.status_code == 200:
            reply = response.json()["reply"]["text"]
            log(f"Chat Reply: {reply[:120]}...", "SUCCESS")
            return True
        log(f"Chat Failed: {response.text}", "ERROR")
        return False
    except requests.RequestException as e:
        log(f"Chat Request Error: {e}", "ERROR")
        return False


async def test_websocket():
    try:
        log("Testing WebSocket Connection...")
        async with websockets.connect(WS_URL) as websocket:
            data = json.loads(await websocket.recv())
            if data.get("type") != "connected":
                log(f"Unexpected WS Welcome: {data}", "ERROR")
                return False
            log("WebSocket Connected Successfully", "SUCCESS")

            await websocket.send("ping")
            # a dashboard push may arrive before the pong
            for _ in range(3):
                message = await websocket.recv()
                if message == "pong":
                    log("WebSocket Ping/Pong Successful", "SUCCESS")
                    return True
            log("WebSocket Pong Missing", "ERROR")
            return False
    except (OSError, websockets.exceptions.WebSocketException) as e:
        log(f"WebSocket Failed: {e}", "ERROR")
        return False


async def main():
    print("=======================================")
    print("   LEAF NETWORK SMOKE TEST             ")
    print("=======================================")

    if not test_health():
        print("\n[ERROR] CRITICAL: Backend not running. Start it first.")
        return

    await test_websocket()
    test_dashboard()
    test_chat()

    print("\n=======================================")
    print("   TESTING COMPLETE                    ")
    print("=======================================")


if __name__ == "__main__":
    asyncio.run(main())
