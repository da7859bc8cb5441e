class PledgeError(Exception): pass

class NoApplication(PledgeError):
	'''Raised when scheduling work with no Application to run it.'''
