from .pagseguro_client import MockPaymentGateway, PagSeguroClient

__all__ = ["MockPaymentGateway", "PagSeguroClient"]
