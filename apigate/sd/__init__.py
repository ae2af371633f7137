"""Service discovery: subscribers, balancers, the discovery register and DNS SRV."""