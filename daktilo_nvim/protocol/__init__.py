"""gRPC wire messages for the daktilo client service"""
