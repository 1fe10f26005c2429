"""Background gRPC client and runtime driver"""
