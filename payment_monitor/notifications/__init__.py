"""Fan-out of failed-payment records to the alert and record sinks."""
