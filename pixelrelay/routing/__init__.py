"""pixelrelay event routing: queued, retried fan-out to destinations.

Every event handed to the DeliveryDispatcher becomes one delivery task per
registered destination.  Tasks are drained through a RetryQueue one at a
time while the delivery channel is online; failed hooks are retried with
backoff and reported once when their attempts run out.  One destination's
failure never affects another destination's task.
"""
