SAMPLE_ORDERS = [
    {
        'orderId': 'ORD-2024-001',
        'customerId': 'CUST-10001',
        'customerEmail': 'buyer@acme-corp.com',
        'customerType': 'BUSINESS',
        'orderHistory': 42,
        'items': [
            {'productId': 'PROD-100', 'name': 'Office Chair', 'quantity': 2, 'price': 149.99},
        ],
        'totalAmount': 299.98,
        'shippingAddress': {
            'street': '500 Market St',
            'city': 'San Francisco',
            'state': 'CA',
            'zipCode': '94105',
            'country': 'USA'
        },
        'paymentMethod': 'PURCHASE_ORDER',
        'poNumber': 'PO-7781',
        'timestamp': '2024-10-14T15:30:00+00:00'
    },
    {
        # New customer, free email, $5000 of gift cards: every signal negative
        'orderId': 'ORD-2024-002',
        'customerId': 'CUST-99999',
        'customerEmail': 'deals4u@tempmail.com',
        'orderHistory': 0,
        'items': [
            {'productId': 'GC-500', 'name': 'Gift Card $100', 'quantity': 50, 'price': 100.00},
        ],
        'totalAmount': 5000.00,
        'shippingAddress': {
            'street': '1 Unknown Rd',
            'city': 'Springfield',
            'country': 'USA'
        },
        'paymentMethod': 'CREDIT_CARD',
        'cardLast4': '4242',
        'timestamp': '2024-10-14T03:12:00+00:00'
    },
    {
        'orderId': 'ORD-2024-003',
        'customerId': 'CUST-20002',
        'customerEmail': 'not-an-email',
        'items': [],
        'totalAmount': 0,
        'shippingAddress': {'city': 'Madison'},
        'timestamp': '2024-10-14T08:15:00+00:00'
    }
]

# What a model typically answers for the orders above
SAMPLE_AI_RESPONSES = {
    'ORD-2024-001': {
        'score': 9,
        'risk_level': 'LOW',
        'decision': 'APPROVED',
        'confidence': 92,
        'fraud_indicators': [],
        'reasoning': 'Established business customer with corporate email and complete address.',
        'recommendations': []
    },
    'ORD-2024-002': {
        'score': 1,
        'risk_level': 'HIGH',
        'decision': 'REJECTED',
        'confidence': 95,
        'fraud_indicators': [
            'Disposable email domain',
            'Order value above $5000 is high risk',
            'Quantity of 50 items is high risk for a new customer',
            'Gift cards in bulk',
            'Order placed late night'
        ],
        'reasoning': 'Multiple strong fraud signals.',
        'recommendations': ['Block customer pending identity verification']
    }
}
