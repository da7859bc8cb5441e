from setuptools import setup

setup_params = dict(
	name="pledge",
	version="1.0.0",
	description="Single-assignment deferred results with chainable callbacks",
	author="Jamie Turner",
	author_email="dev@yougov.com",
	packages=["pledge"],
	python_requires=">=3.8",
	extras_require={
		'testing': [
			'pytest',
		],
	},
)

if __name__ == '__main__':
	setup(**setup_params)
