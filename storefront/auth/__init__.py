SPECIALS = set("!@#$%^&*()-_=+[]{}|;:'\",.<>/?`~\\")
