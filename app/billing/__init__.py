"""
Billing application.

Plan transitions for listings: upgrades through Stripe Checkout, verified
exactly once when the buyer returns; downgrades executed immediately or
queued for admin approval depending on the downgrade policy.

Key components:
    - services.plan_transition.PlanTransitionEngine: classify and orchestrate
    - services.checkout_verifier.CheckoutVerifier: verify returned sessions
    - services.governance.DowngradeGovernanceStore: policy and request queue
    - services.downgrade_executor.DowngradeExecutor: apply a downgrade
    - adapters.StripeAdapter: payment gateway
"""
