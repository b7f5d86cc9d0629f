from blinker import Namespace

salon_signals = Namespace()

# Sent after a new promotion has been committed; receivers get promotion=<Promotion>
promotion_created = salon_signals.signal('promotion-created')
