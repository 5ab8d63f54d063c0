from .base import Transport, TransportError, Interest, Data, FilterResult, \
    DataCallback, TimeoutCallback, InterestHandler, DEFAULT_INTEREST_LIFETIME
