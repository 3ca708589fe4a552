"""
Domain constants used across services/routers.
"""

# Metadata key carrying our order id through provider transactions
ORDER_ID_METADATA_KEY = "orderId"

# Provider webhook event types we act on
PAYSTACK_CHARGE_SUCCESS = "charge.success"
STRIPE_CHECKOUT_COMPLETED = "checkout.session.completed"
STRIPE_PAYMENT_FAILED = "payment_intent.payment_failed"

# Signature headers
PAYSTACK_SIGNATURE_HEADER = "x-paystack-signature"
STRIPE_SIGNATURE_HEADER = "stripe-signature"

# Storefront paths used for browser redirects
CHECKOUT_SUCCESS_PATH = "/checkout/success"
CHECKOUT_CONFIRMATION_PATH = "/checkout/confirmation"
