import parking_violations.db.database as db

class Base(db.DeclarativeBase):
    __abstract__ = True

    @classmethod
    def get_by(cls, **kwargs):
        assert kwargs, 'kwargs can\'t be empty'
        return cls.query.filter_by(**kwargs).first()

    @classmethod
    def get_all_by(cls, **kwargs):
        assert kwargs, 'kwargs can\'t be empty'
        return cls.query.filter_by(**kwargs).all()

    @classmethod
    def for_company(cls, company_id, *criteria):
        """Query of the company's rows, narrowed by any further criteria.
        Only for models that carry a company_id column."""
        assert company_id, 'company_id can\'t be empty'
        return cls.query.filter(cls.company_id == company_id, *criteria)
