"""HTTP and WebSocket boundary tests"""
