from .gateway import TextGateway, extract_json, gateway_from_config

__all__ = ["TextGateway", "extract_json", "gateway_from_config"]
